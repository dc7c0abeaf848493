"""
Tests for the local backend.

Tests cover:
- StaticTokenVerifier
- InMemoryDocumentStore get/set/merge/transact isolation
- DiskBlobStore atomic save, load, traversal rejection
- Signed URL minting and verification (tamper, expiry)
- create_backends() wiring
"""
import threading
import time
from pathlib import Path
from urllib.parse import parse_qs, unquote, urlparse

import pytest

from narration_ms.backends import create_backends
from narration_ms.backends.base import IdentityVerificationError
from narration_ms.backends.local import DiskBlobStore, InMemoryDocumentStore, StaticTokenVerifier
from narration_ms.core.config import NarrationServiceConfig, Settings


class TestStaticTokenVerifier:

    def test_known_token(self):
        assert StaticTokenVerifier({"t": "u1"}).verify("t") == "u1"

    def test_unknown_token(self):
        with pytest.raises(IdentityVerificationError):
            StaticTokenVerifier({"t": "u1"}).verify("x")


class TestInMemoryDocumentStore:

    def test_get_missing(self):
        assert InMemoryDocumentStore().get("a/b") is None

    def test_set_replaces(self):
        store = InMemoryDocumentStore()
        store.set("a/b", {"x": 1, "y": 2})
        store.set("a/b", {"x": 3})
        assert store.get("a/b") == {"x": 3}

    def test_set_merge(self):
        store = InMemoryDocumentStore()
        store.set("a/b", {"x": 1, "y": 2})
        store.set("a/b", {"x": 3}, merge=True)
        assert store.get("a/b") == {"x": 3, "y": 2}

    def test_returned_documents_are_copies(self):
        store = InMemoryDocumentStore()
        store.set("a/b", {"nested": {"x": 1}})
        doc = store.get("a/b")
        doc["nested"]["x"] = 99
        assert store.get("a/b") == {"nested": {"x": 1}}

    def test_transact_merges_result(self):
        store = InMemoryDocumentStore()
        store.set("a/b", {"count": 1, "resetAt": 5})
        store.transact("a/b", lambda doc: {"count": doc["count"] + 1})
        assert store.get("a/b") == {"count": 2, "resetAt": 5}

    def test_transact_none_result_leaves_document(self):
        store = InMemoryDocumentStore()
        store.transact("a/b", lambda doc: None)
        assert store.get("a/b") is None
        assert len(store) == 0

    def test_transact_exception_aborts(self):
        store = InMemoryDocumentStore()
        store.set("a/b", {"count": 1})

        def boom(doc):
            doc["count"] = 100
            raise RuntimeError("abort")

        with pytest.raises(RuntimeError):
            store.transact("a/b", boom)
        assert store.get("a/b") == {"count": 1}


class TestDiskBlobStore:

    @pytest.fixture
    def blobs(self, tmp_path):
        return DiskBlobStore(str(tmp_path), "http://testserver/", signing_secret="secret")

    def test_save_and_load(self, blobs, tmp_path):
        blobs.save("users/u1/a.mp3", b"audio", "audio/mpeg")
        assert (tmp_path / "users" / "u1" / "a.mp3").read_bytes() == b"audio"
        assert blobs.load("users/u1/a.mp3") == b"audio"

    def test_save_overwrites(self, blobs):
        blobs.save("a.mp3", b"one", "audio/mpeg")
        blobs.save("a.mp3", b"two", "audio/mpeg")
        assert blobs.load("a.mp3") == b"two"

    def test_no_temp_files_left(self, blobs, tmp_path):
        blobs.save("a.mp3", b"one", "audio/mpeg")
        assert [p.name for p in tmp_path.iterdir()] == ["a.mp3"]

    def test_concurrent_saves_same_path(self, blobs, tmp_path, monkeypatch):
        """Two writers of one path both finish; the last rename wins."""
        barrier = threading.Barrier(2, timeout=5)
        original_write = Path.write_bytes

        def write_then_wait(self, data):
            written = original_write(self, data)
            barrier.wait()
            return written

        monkeypatch.setattr(Path, "write_bytes", write_then_wait)

        errors = []

        def writer(payload):
            try:
                blobs.save("users/u1/page_0_en.mp3", payload, "audio/mpeg")
            except Exception as e:
                errors.append(repr(e))

        threads = [threading.Thread(target=writer, args=(bytes([n]) * 500,)) for n in (1, 2)]
        for th in threads:
            th.start()
        for th in threads:
            th.join()

        assert errors == []
        assert blobs.load("users/u1/page_0_en.mp3") in (b"\x01" * 500, b"\x02" * 500)
        assert [p.name for p in (tmp_path / "users" / "u1").iterdir()] == ["page_0_en.mp3"]

    def test_load_missing(self, blobs):
        assert blobs.load("nope.mp3") is None

    @pytest.mark.parametrize("path", ["", "/etc/passwd", "../x.mp3", "a/../../x.mp3", "a//b.mp3", "./a.mp3"])
    def test_invalid_paths_rejected(self, blobs, path):
        with pytest.raises(ValueError):
            blobs.save(path, b"x", "audio/mpeg")

    def test_signed_url_shape(self, blobs):
        url = urlparse(blobs.signed_url("users/u1/story 1/page_0_en.mp3", 3600))
        assert url.scheme == "http"
        assert url.netloc == "testserver"
        assert unquote(url.path) == "/v1/artifacts/users/u1/story 1/page_0_en.mp3"
        query = parse_qs(url.query)
        assert int(query["expires"][0]) > time.time()
        assert len(query["signature"][0]) == 64

    def test_signature_verifies(self, blobs):
        query = parse_qs(urlparse(blobs.signed_url("a.mp3", 3600)).query)
        expires, signature = int(query["expires"][0]), query["signature"][0]
        assert blobs.verify_signature("a.mp3", expires, signature)

    def test_signature_bound_to_path(self, blobs):
        query = parse_qs(urlparse(blobs.signed_url("a.mp3", 3600)).query)
        assert not blobs.verify_signature("b.mp3", int(query["expires"][0]), query["signature"][0])

    def test_signature_bound_to_expiry(self, blobs):
        query = parse_qs(urlparse(blobs.signed_url("a.mp3", 3600)).query)
        assert not blobs.verify_signature("a.mp3", int(query["expires"][0]) + 1, query["signature"][0])

    def test_expired_signature(self, blobs):
        query = parse_qs(urlparse(blobs.signed_url("a.mp3", 60)).query)
        expires = int(query["expires"][0])
        assert not blobs.verify_signature("a.mp3", expires, query["signature"][0], now=expires + 1)

    def test_other_secret_rejects(self, tmp_path, blobs):
        other = DiskBlobStore(str(tmp_path), "http://testserver", signing_secret="other")
        query = parse_qs(urlparse(blobs.signed_url("a.mp3", 3600)).query)
        assert not other.verify_signature("a.mp3", int(query["expires"][0]), query["signature"][0])

    def test_generated_secret_when_unset(self, tmp_path):
        blobs = DiskBlobStore(str(tmp_path), "http://testserver")
        query = parse_qs(urlparse(blobs.signed_url("a.mp3", 3600)).query)
        assert blobs.verify_signature("a.mp3", int(query["expires"][0]), query["signature"][0])


class TestCreateBackends:

    def test_local_backends(self, tmp_path):
        config = NarrationServiceConfig.from_settings(Settings(raw={
            "backend": {"type": "local", "tokens": {"t": "u1"}},
            "artifacts": {"base_dir": str(tmp_path)},
        }))
        backends = create_backends(config)
        assert backends.name == "local"
        assert backends.verifier.verify("t") == "u1"
        assert isinstance(backends.documents, InMemoryDocumentStore)
        assert isinstance(backends.blobs, DiskBlobStore)
        assert backends.blobs.base_dir == tmp_path
