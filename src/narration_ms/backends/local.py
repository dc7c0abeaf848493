"""
Local Backend: single-instance collaborators for development and tests.

Components:
    - StaticTokenVerifier: token -> uid table from settings (backend.tokens)
    - InMemoryDocumentStore: dict of documents guarded by one lock; the
      lock makes transact() an atomic read-modify-write within the process
    - DiskBlobStore: files under artifacts.base_dir, written atomically,
      served back through HMAC-signed URLs (GET /v1/artifacts/{path})

File Organization:
    {base_dir}/
        users/{uid}/voice_cache/{voiceId}/{storyId}/page_{n}_{lang}.mp3

Signed URLs:
    {public_base_url}/v1/artifacts/{quoted path}?expires={epoch s}&signature={hex}

    signature = HMAC-SHA256(signing_secret, "{path}\\n{expires}")

    If no signing secret is configured a random one is generated at startup,
    so URLs do not survive a restart.

This backend is only correct for a single process: the document lock and
the token table live in memory.
"""
from __future__ import annotations

import copy
import hashlib
import hmac
import secrets
import threading
import time
import uuid
from pathlib import Path, PurePosixPath
from typing import Dict, Optional
from urllib.parse import quote, urlencode

from narration_ms.backends.base import (
    BlobStore,
    Document,
    DocumentStore,
    IdentityVerificationError,
    IdentityVerifier,
    TransactionFn,
)
from narration_ms.core.logging import get_logger, info, verbose, warn
from narration_ms.utils.timeit import timeit

_LOG = get_logger("narration-ms.backend.local")


class StaticTokenVerifier(IdentityVerifier):
    """Verifies tokens against a fixed token -> uid mapping."""
    name = "static"

    def __init__(self, tokens: Dict[str, str]):
        self._tokens = dict(tokens)

    def verify(self, token: str) -> str:
        uid = self._tokens.get(token)
        if not uid:
            raise IdentityVerificationError("unknown token")
        return uid


class InMemoryDocumentStore(DocumentStore):
    """
    Thread-safe in-process document store.

    Documents are deep-copied on the way in and out so callers can never
    mutate stored state outside a transaction.
    """
    name = "memory"

    def __init__(self):
        self._docs: Dict[str, Document] = {}
        self._lock = threading.Lock()

    def get(self, path: str) -> Optional[Document]:
        with self._lock:
            doc = self._docs.get(path)
            return copy.deepcopy(doc) if doc is not None else None

    def set(self, path: str, data: Document, merge: bool = False) -> None:
        with self._lock:
            self._write(path, data, merge)

    def transact(self, path: str, fn: TransactionFn) -> None:
        with self._lock:
            current = self._docs.get(path)
            update = fn(copy.deepcopy(current) if current is not None else None)
            if update is not None:
                self._write(path, update, merge=True)

    def _write(self, path: str, data: Document, merge: bool) -> None:
        if merge and path in self._docs:
            self._docs[path].update(copy.deepcopy(data))
        else:
            self._docs[path] = copy.deepcopy(data)

    def __len__(self) -> int:
        with self._lock:
            return len(self._docs)


def _safe_relative(path: str) -> PurePosixPath:
    """
    Validate a blob path.

    Raises:
        ValueError: If the path is empty, absolute, or contains "." / ".."
            segments.
    """
    p = PurePosixPath(path)
    if not path or p.is_absolute() or any(part in ("", ".", "..") for part in path.split("/")):
        raise ValueError(f"invalid blob path: {path!r}")
    return p


class DiskBlobStore(BlobStore):
    """Filesystem blob store with HMAC-signed retrieval URLs."""
    name = "disk"

    def __init__(self, base_dir: str, public_base_url: str, signing_secret: str = ""):
        self._base_dir = Path(base_dir)
        self._public_base_url = public_base_url.rstrip("/")
        if not signing_secret:
            signing_secret = secrets.token_hex(32)
            warn(_LOG, "signing_secret_generated",
                 hint="set artifacts.signing_secret to keep URLs valid across restarts")
        self._secret = signing_secret.encode("utf-8")

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def _path_for(self, path: str) -> Path:
        rel = _safe_relative(path)
        full = (self._base_dir / rel).resolve()
        root = self._base_dir.resolve()
        if root != full and root not in full.parents:
            raise ValueError(f"blob path escapes storage root: {path!r}")
        return full

    def save(self, path: str, data: bytes, content_type: str) -> None:
        p = self._path_for(path)
        p.parent.mkdir(parents=True, exist_ok=True)

        with timeit("storage_write") as t:
            # temp file + rename, readers never see a partial blob
            tmp = p.with_name(f"{p.name}.{uuid.uuid4().hex}.tmp")
            try:
                tmp.write_bytes(data)
                tmp.replace(p)
            finally:
                tmp.unlink(missing_ok=True)

        info(_LOG, "saved", path=path, bytes=len(data), content_type=content_type,
             seconds=round(t.seconds, 4))

    def load(self, path: str) -> Optional[bytes]:
        """Read a blob, or None if it does not exist."""
        p = self._path_for(path)
        if not p.is_file():
            return None
        return p.read_bytes()

    def _signature(self, path: str, expires: int) -> str:
        msg = f"{path}\n{expires}".encode("utf-8")
        return hmac.new(self._secret, msg, hashlib.sha256).hexdigest()

    def signed_url(self, path: str, ttl_seconds: int) -> str:
        _safe_relative(path)
        expires = int(time.time()) + int(ttl_seconds)
        query = urlencode({"expires": expires, "signature": self._signature(path, expires)})
        url = f"{self._public_base_url}/v1/artifacts/{quote(path)}?{query}"
        verbose(_LOG, "signed_url", path=path, expires=expires)
        return url

    def verify_signature(self, path: str, expires: int, signature: str, now: float | None = None) -> bool:
        """Check a signed URL's signature and expiry."""
        now = time.time() if now is None else now
        if expires <= now:
            return False
        return hmac.compare_digest(self._signature(path, expires), signature)
