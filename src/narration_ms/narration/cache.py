"""
Narration Cache: key derivation, lookup and write.

Cache entries live in the document store, partitioned per subject:

    users/{uid}/voice_cache/{cache_key}

Cache Key:
    voiceId | storyId | pageIndex | language

    Each component is percent-encoded with no safe characters before
    joining, so "|" and "/" can never appear inside a component. Distinct
    inputs therefore never collide, and the key is always a single valid
    document id. Inputs must already be trimmed / normalized (see
    services/validators.py), which makes requests that differ only in
    incidental whitespace or language case share one key.

Read Policy:
    A document without a non-empty string ``audioUrl`` is a miss. The
    pipeline regenerates and overwrites it rather than failing the request.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import quote

from narration_ms.backends.base import DocumentStore
from narration_ms.core.logging import get_logger, info, warn

_LOG = get_logger("narration-ms.cache")

KEY_DELIMITER = "|"


def derive_cache_key(voice_id: str, story_id: str, page_index: int, language: str) -> str:
    """
    Build the deterministic cache key for one narration.

    Example:
        >>> derive_cache_key("voice-abc", "story/1", 3, "en")
        'voice-abc|story%2F1|3|en'
    """
    parts = (voice_id, story_id, str(page_index), language)
    return KEY_DELIMITER.join(quote(part, safe="") for part in parts)


def cache_document_path(uid: str, key: str) -> str:
    return f"users/{uid}/voice_cache/{key}"


@dataclass
class CacheLookup:
    """
    Outcome of a cache lookup.

    Attributes:
        status: "hit", "miss" (no document) or "malformed" (document
            without a usable audioUrl, handled exactly like a miss).
        audio_url: Set only on a hit.
    """
    status: str
    audio_url: Optional[str] = None

    @property
    def hit(self) -> bool:
        return self.status == "hit"


@dataclass
class CacheEntry:
    """
    Metadata recorded after a successful synthesis + upload.

    Attributes:
        story_id, page_index, language, voice_id: Normalized request identity.
        audio_url: Signed, time-bounded retrieval URL.
        storage_path: Blob path the URL points at.
        byte_length: Size of the stored audio.
    """
    story_id: str
    page_index: int
    language: str
    voice_id: str
    audio_url: str
    storage_path: str
    byte_length: int

    def to_document(self, created_at: Any) -> Dict[str, Any]:
        return {
            "storyId": self.story_id,
            "pageIndex": self.page_index,
            "lang": self.language,
            "voiceId": self.voice_id,
            "audioUrl": self.audio_url,
            "storagePath": self.storage_path,
            "bytes": self.byte_length,
            "createdAt": created_at,
        }


class CacheStore:
    """Per-subject narration cache on top of a DocumentStore."""

    def __init__(self, documents: DocumentStore):
        self._documents = documents

    def lookup(self, uid: str, key: str) -> CacheLookup:
        """
        Look up a cached narration.

        Returns:
            CacheLookup; only status "hit" carries an audio_url.
        """
        doc = self._documents.get(cache_document_path(uid, key))
        if doc is None:
            return CacheLookup(status="miss")

        audio_url = doc.get("audioUrl")
        if isinstance(audio_url, str) and audio_url:
            info(_LOG, "cache_hit", key=key)
            return CacheLookup(status="hit", audio_url=audio_url)

        warn(_LOG, "cache_entry_malformed", key=key, fields=sorted(doc.keys()))
        return CacheLookup(status="malformed")

    def write(self, uid: str, key: str, entry: CacheEntry) -> None:
        """Record an entry. Last write wins."""
        doc = entry.to_document(created_at=self._documents.server_timestamp())
        self._documents.set(cache_document_path(uid, key), doc)
        info(_LOG, "cache_written", key=key, bytes=entry.byte_length)
