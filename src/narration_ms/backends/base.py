"""
Collaborator Interfaces.

The narration pipeline talks to three external systems. Each is modelled as
a small base class; backends (local.py, firebase.py) implement them.

    IdentityVerifier  - bearer token -> stable subject uid
    DocumentStore     - JSON-like documents addressed by slash paths,
                        with a single-document atomic transaction
    BlobStore         - binary upload by path + time-bounded signed URLs

Document paths follow the Firestore convention of alternating
collection/document segments, e.g. ``users/{uid}/voice_cache/{key}``.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

Document = Dict[str, Any]

# Receives the current document (None when absent) and returns the fields to
# merge into it, or None to leave it untouched. Raising aborts the transaction.
TransactionFn = Callable[[Optional[Document]], Optional[Document]]


class IdentityVerificationError(Exception):
    """Raised by verifiers when a token cannot be verified."""
    pass


class IdentityVerifier:
    """Verifies a bearer token and returns the subject uid."""
    name: str = "base"

    def verify(self, token: str) -> str:
        """
        Verify a bearer token.

        Returns:
            Stable subject identifier.

        Raises:
            Exception: Any failure (expired, malformed, revoked). Callers
                treat every exception the same way.
        """
        raise NotImplementedError


class DocumentStore:
    """Durable key-value document store."""
    name: str = "base"

    def get(self, path: str) -> Optional[Document]:
        """Read a document, or None if it does not exist."""
        raise NotImplementedError

    def set(self, path: str, data: Document, merge: bool = False) -> None:
        """Write a document, replacing it unless merge=True."""
        raise NotImplementedError

    def transact(self, path: str, fn: TransactionFn) -> None:
        """
        Atomically read-modify-write one document.

        ``fn`` sees a consistent snapshot; its returned fields are merged into
        the document only if no concurrent writer committed in between.
        Backends may invoke ``fn`` more than once, so it must be free of side
        effects other than raising.
        """
        raise NotImplementedError

    def server_timestamp(self) -> Any:
        """Value to store for "now" in createdAt-style fields."""
        return int(time.time() * 1000)


class BlobStore:
    """Binary object storage with signed read URLs."""
    name: str = "base"

    def save(self, path: str, data: bytes, content_type: str) -> None:
        """Persist ``data`` at ``path``, overwriting existing content."""
        raise NotImplementedError

    def signed_url(self, path: str, ttl_seconds: int) -> str:
        """Mint a read-only URL for ``path`` valid for ``ttl_seconds``."""
        raise NotImplementedError


@dataclass
class Backends:
    """The three collaborators the pipeline is wired with."""
    name: str
    verifier: IdentityVerifier
    documents: DocumentStore
    blobs: BlobStore
