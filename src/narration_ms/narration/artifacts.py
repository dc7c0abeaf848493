"""
Artifact Storage for synthesized narrations.

Blob Layout:
    users/{uid}/voice_cache/{voiceId}/{storyId}/page_{pageIndex}_{language}.mp3

A new synthesis for the same identity overwrites the previous file. Errors
from the blob store are not classified here; the pipeline reports them as
a generic server failure.
"""
from __future__ import annotations

from narration_ms.backends.base import BlobStore
from narration_ms.core.config import ArtifactConfig
from narration_ms.core.logging import get_logger, verbose
from narration_ms.narration.provider import AudioArtifact

_LOG = get_logger("narration-ms.artifacts")


def storage_path(uid: str, voice_id: str, story_id: str, page_index: int, language: str) -> str:
    """
    Blob path for one narration.

    Example:
        >>> storage_path("u1", "voice-abc", "story-1", 3, "en")
        'users/u1/voice_cache/voice-abc/story-1/page_3_en.mp3'
    """
    return f"users/{uid}/voice_cache/{voice_id}/{story_id}/page_{page_index}_{language}.mp3"


class ArtifactStore:
    """Persists audio and mints time-bounded retrieval URLs."""

    def __init__(self, blobs: BlobStore, config: ArtifactConfig):
        self._blobs = blobs
        self._config = config

    @property
    def ttl_seconds(self) -> int:
        return self._config.signed_url_ttl_seconds

    def save(self, path: str, artifact: AudioArtifact) -> None:
        self._blobs.save(path, artifact.data, artifact.content_type or self._config.content_type)
        verbose(_LOG, "artifact_saved", path=path, bytes=artifact.byte_length)

    def signed_url(self, path: str) -> str:
        return self._blobs.signed_url(path, self._config.signed_url_ttl_seconds)
