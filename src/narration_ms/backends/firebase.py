"""
Firebase Backend: production collaborators via firebase-admin.

Components:
    - FirebaseIdentityVerifier: Firebase Auth ID tokens
    - FirestoreDocumentStore: Firestore documents; transact() runs inside a
      Firestore transaction, retried by the client on contention
    - CloudStorageBlobStore: Cloud Storage bucket; V2 signed URLs (V4 URLs
      are capped at 7 days, the narration URLs live for 30)

Credentials:
    Application Default Credentials are used (GOOGLE_APPLICATION_CREDENTIALS
    or the runtime service account). Bucket and project id come from
    backend.firebase_bucket / backend.firebase_project_id when set.

Installation:
    pip install narration-ms[firebase]
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import firebase_admin
from firebase_admin import auth, firestore, storage

from narration_ms.backends.base import (
    BlobStore,
    Document,
    DocumentStore,
    IdentityVerifier,
    TransactionFn,
)
from narration_ms.core.config import BackendConfig
from narration_ms.core.logging import get_logger, info

_LOG = get_logger("narration-ms.backend.firebase")


def get_firebase_app(config: BackendConfig) -> firebase_admin.App:
    """Initialize the default Firebase app once per process."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        options = {}
        if config.firebase_bucket:
            options["storageBucket"] = config.firebase_bucket
        if config.firebase_project_id:
            options["projectId"] = config.firebase_project_id
        app = firebase_admin.initialize_app(options=options or None)
        info(_LOG, "firebase_initialized", project=config.firebase_project_id or "-")
        return app


class FirebaseIdentityVerifier(IdentityVerifier):
    name = "firebase-auth"

    def __init__(self, app: firebase_admin.App):
        self._app = app

    def verify(self, token: str) -> str:
        decoded = auth.verify_id_token(token, app=self._app)
        return decoded["uid"]


class FirestoreDocumentStore(DocumentStore):
    name = "firestore"

    def __init__(self, app: firebase_admin.App):
        self._db = firestore.client(app)

    def get(self, path: str) -> Optional[Document]:
        snap = self._db.document(path).get()
        return snap.to_dict() if snap.exists else None

    def set(self, path: str, data: Document, merge: bool = False) -> None:
        self._db.document(path).set(data, merge=merge)

    def transact(self, path: str, fn: TransactionFn) -> None:
        ref = self._db.document(path)

        @firestore.transactional
        def _run(transaction):
            snap = ref.get(transaction=transaction)
            update = fn(snap.to_dict() if snap.exists else None)
            if update is not None:
                transaction.set(ref, update, merge=True)

        _run(self._db.transaction())

    def server_timestamp(self) -> Any:
        return firestore.SERVER_TIMESTAMP


class CloudStorageBlobStore(BlobStore):
    name = "cloud-storage"

    def __init__(self, app: firebase_admin.App, bucket: str = ""):
        self._bucket = storage.bucket(bucket or None, app=app)

    def save(self, path: str, data: bytes, content_type: str) -> None:
        self._bucket.blob(path).upload_from_string(data, content_type=content_type)

    def signed_url(self, path: str, ttl_seconds: int) -> str:
        expires = datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds)
        return self._bucket.blob(path).generate_signed_url(
            version="v2",
            expiration=expires,
            method="GET",
        )
