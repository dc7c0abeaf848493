"""
Collaborator Backends.

    - base.py: IdentityVerifier / DocumentStore / BlobStore interfaces
    - local.py: single-process implementations (dev, tests)
    - firebase.py: Firebase Auth, Firestore, Cloud Storage

The firebase backend is imported lazily so firebase-admin is only required
when it is selected.
"""
from __future__ import annotations

from narration_ms.backends.base import (
    Backends,
    BlobStore,
    DocumentStore,
    IdentityVerificationError,
    IdentityVerifier,
)
from narration_ms.core.config import NarrationServiceConfig
from narration_ms.core.logging import get_logger, info

_LOG = get_logger("narration-ms.backends")


def create_backends(config: NarrationServiceConfig) -> Backends:
    """
    Build the collaborators selected by ``backend.type``.

    Raises:
        ValueError: If the backend type is unknown.
    """
    backend_type = config.backend.type

    if backend_type == "local":
        from narration_ms.backends.local import (
            DiskBlobStore,
            InMemoryDocumentStore,
            StaticTokenVerifier,
        )
        backends = Backends(
            name="local",
            verifier=StaticTokenVerifier(config.backend.tokens),
            documents=InMemoryDocumentStore(),
            blobs=DiskBlobStore(
                base_dir=config.artifacts.base_dir,
                public_base_url=config.artifacts.public_base_url,
                signing_secret=config.artifacts.signing_secret,
            ),
        )
    elif backend_type == "firebase":
        from narration_ms.backends.firebase import (
            CloudStorageBlobStore,
            FirebaseIdentityVerifier,
            FirestoreDocumentStore,
            get_firebase_app,
        )
        app = get_firebase_app(config.backend)
        backends = Backends(
            name="firebase",
            verifier=FirebaseIdentityVerifier(app),
            documents=FirestoreDocumentStore(app),
            blobs=CloudStorageBlobStore(app, config.backend.firebase_bucket),
        )
    else:
        raise ValueError(f"Unknown backend type: {backend_type}")

    info(_LOG, "backends_ready", backend=backends.name,
         verifier=backends.verifier.name, documents=backends.documents.name,
         blobs=backends.blobs.name)
    return backends


__all__ = [
    "Backends",
    "BlobStore",
    "DocumentStore",
    "IdentityVerificationError",
    "IdentityVerifier",
    "create_backends",
]
