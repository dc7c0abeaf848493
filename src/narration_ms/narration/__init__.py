"""
Narration building blocks: cache, provider and artifact storage.

    - cache.py: cache key derivation, per-subject cache documents
    - provider.py: ElevenLabs synthesis with failure classification
    - artifacts.py: blob paths, upload and signed URLs
"""
from narration_ms.narration.artifacts import ArtifactStore, storage_path
from narration_ms.narration.cache import (
    CacheEntry,
    CacheLookup,
    CacheStore,
    cache_document_path,
    derive_cache_key,
)
from narration_ms.narration.provider import AudioArtifact, ElevenLabsProvider

__all__ = [
    "ArtifactStore",
    "AudioArtifact",
    "CacheEntry",
    "CacheLookup",
    "CacheStore",
    "ElevenLabsProvider",
    "cache_document_path",
    "derive_cache_key",
    "storage_path",
]
