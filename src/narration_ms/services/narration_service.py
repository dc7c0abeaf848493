"""
NarrationService - the parent voice narration pipeline.

Architecture:
    AuthGate → RateLimiter → RequestValidator → Cache lookup
        hit:  respond {audioUrl, cached: true}
        miss: ElevenLabs → ArtifactStore → Cache write → respond {cached: false}

Every stage can stop the pipeline with a NarrationError; the stage order is
fixed and nothing is retried within a request. Any exception that is not a
NarrationError (store outage, blob write failure, bug) is logged with its
traceback and surfaced as InternalError so no internal detail reaches the
caller.

Example:
    >>> from narration_ms.core.config import Settings
    >>> from narration_ms.services import get_service
    >>>
    >>> service = get_service(Settings(raw={"backend": {"tokens": {"t": "u1"}}}))
    >>> result = service.speak(
    ...     {"Authorization": "Bearer t"},
    ...     {"storyId": "s1", "pageIndex": 0, "lang": "en",
    ...      "voiceId": "voice-abc", "text": "Once upon a time"},
    ... )
    >>> result.cached
    False
"""
from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from narration_ms import __version__
from narration_ms.backends import Backends, create_backends
from narration_ms.core.config import Defaults, NarrationServiceConfig, Settings
from narration_ms.core.errors import InternalError, MisconfiguredError, NarrationError
from narration_ms.core.logging import (
    debug,
    error,
    fail,
    get_logger,
    info,
    request_context,
    stage,
    success,
)
from narration_ms.core.metrics import metrics
from narration_ms.narration.artifacts import ArtifactStore, storage_path
from narration_ms.narration.cache import CacheEntry, CacheStore, derive_cache_key
from narration_ms.narration.provider import ElevenLabsProvider
from narration_ms.services.auth import authenticate
from narration_ms.services.rate_limit import RateLimiter
from narration_ms.services.validators import validate_request
from narration_ms.utils.timeit import timeit

_LOG = get_logger("narration-ms.service")


@dataclass
class SpeakResult:
    """
    Successful pipeline outcome.

    Attributes:
        audio_url: Signed URL of the narration MP3.
        cached: True when served from the cache without a provider call.
    """
    audio_url: str
    cached: bool

    def to_dict(self) -> Dict[str, Any]:
        return {"audioUrl": self.audio_url, "cached": self.cached}


class NarrationService:
    """
    Orchestrates one speak request end to end.

    Both the HTTP route and tests drive the pipeline through speak(); the
    collaborators come from a Backends bundle so the same code runs against
    the local and firebase backends.

    Usage:
        config = NarrationServiceConfig.from_settings(settings)
        service = NarrationService(config, create_backends(config))
        result = service.speak(request.headers, body)
    """

    def __init__(
        self,
        config: NarrationServiceConfig,
        backends: Backends,
        provider: Optional[ElevenLabsProvider] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        self._config = config
        self._backends = backends
        self._provider = provider or ElevenLabsProvider(config.provider)
        self._rate_limiter = rate_limiter or RateLimiter(backends.documents, config.rate_limit)
        self._cache = CacheStore(backends.documents)
        self._artifacts = ArtifactStore(backends.blobs, config.artifacts)
        self._text_preview_chars = config.logging.text_preview_chars

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def config(self) -> NarrationServiceConfig:
        return self._config

    @property
    def backends(self) -> Backends:
        return self._backends

    @property
    def provider(self) -> ElevenLabsProvider:
        return self._provider

    # =========================================================================
    # Pipeline
    # =========================================================================

    def _stage(self, timings: Dict[str, float], name: str, t: timeit, **fields: Any) -> None:
        if t.timing:
            timings[name] = round(t.timing.seconds, 4)
            stage(_LOG, name, t.timing.seconds, **fields)

    def speak(self, headers: Mapping[str, str], body: Mapping[str, Any]) -> SpeakResult:
        """
        Run the narration pipeline for one request.

        Args:
            headers: Inbound request headers (Authorization is read).
            body: Decoded JSON body; a non-mapping body counts as empty.

        Returns:
            SpeakResult with the audio URL and cache flag.

        Raises:
            NarrationError: Classified failure. Unclassified exceptions are
                converted to InternalError.
        """
        if not isinstance(body, Mapping):
            body = {}
        timings: Dict[str, float] = {}

        with request_context(subject="-"):
            try:
                with timeit("request_total") as total_t:
                    result = self._run(headers, body, timings)
            except NarrationError as e:
                metrics.record_request(e.code, duration=total_t.seconds)
                fail(_LOG, "speak_failed", code=e.code, status=e.status_code,
                     message=e.message, stages=timings)
                raise
            except Exception as e:
                metrics.record_request(InternalError.code, duration=total_t.seconds)
                error(_LOG, "speak_internal_error", exc_info=True,
                      error=str(e), error_type=type(e).__name__, stages=timings)
                raise InternalError() from e

            outcome = "cached" if result.cached else "generated"
            metrics.record_request(outcome, duration=total_t.seconds)
            success(_LOG, "done", cached=result.cached, seconds=round(total_t.seconds, 3),
                    stages=timings)
            return result

    def _run(self, headers: Mapping[str, str], body: Mapping[str, Any], timings: Dict[str, float]) -> SpeakResult:
        # ─────────────────────────────────────────────────────────────────────
        # Stage 1: Authenticate
        # ─────────────────────────────────────────────────────────────────────
        with timeit("auth") as t:
            uid = authenticate(headers, self._backends.verifier)
        self._stage(timings, "auth", t)

        # ─────────────────────────────────────────────────────────────────────
        # Stage 2: Rate limit (transaction committed before any billed call)
        # ─────────────────────────────────────────────────────────────────────
        with timeit("rate_limit") as t:
            self._rate_limiter.check(uid)
        self._stage(timings, "rate_limit", t)

        # ─────────────────────────────────────────────────────────────────────
        # Stage 3: Validate
        # ─────────────────────────────────────────────────────────────────────
        req = validate_request(body, self._config.validation)
        preview = req.text[:self._text_preview_chars] if self._text_preview_chars > 0 else ""
        info(_LOG, "request", story_id=req.story_id, page_index=req.page_index,
             lang=req.language, chars=len(req.text), text_preview=preview)

        if not self._provider.configured:
            raise MisconfiguredError(
                f"Server not configured (missing {Defaults.PROVIDER_API_KEY_ENV})"
            )

        # ─────────────────────────────────────────────────────────────────────
        # Stage 4: Cache lookup
        # ─────────────────────────────────────────────────────────────────────
        key = derive_cache_key(req.voice_id, req.story_id, req.page_index, req.language)
        debug(_LOG, "resolved", cache_key=key, voice_id=req.voice_id)

        with timeit("cache_lookup") as t:
            lookup = self._cache.lookup(uid, key)
        metrics.record_cache(lookup.status)
        self._stage(timings, "cache_lookup", t, cache=lookup.status)

        if lookup.hit:
            return SpeakResult(audio_url=lookup.audio_url, cached=True)

        # ─────────────────────────────────────────────────────────────────────
        # Stage 5: Synthesize
        # ─────────────────────────────────────────────────────────────────────
        with timeit("synth") as t:
            artifact = self._provider.synthesize(req.text, req.voice_id)
        self._stage(timings, "synth", t, bytes=artifact.byte_length)

        # ─────────────────────────────────────────────────────────────────────
        # Stage 6: Store artifact and sign URL
        # ─────────────────────────────────────────────────────────────────────
        path = storage_path(uid, req.voice_id, req.story_id, req.page_index, req.language)
        with timeit("store") as t:
            self._artifacts.save(path, artifact)
            audio_url = self._artifacts.signed_url(path)
        self._stage(timings, "store", t)

        # ─────────────────────────────────────────────────────────────────────
        # Stage 7: Cache write (only after the blob exists)
        # ─────────────────────────────────────────────────────────────────────
        entry = CacheEntry(
            story_id=req.story_id,
            page_index=req.page_index,
            language=req.language,
            voice_id=req.voice_id,
            audio_url=audio_url,
            storage_path=path,
            byte_length=artifact.byte_length,
        )
        with timeit("cache_write") as t:
            self._cache.write(uid, key, entry)
        self._stage(timings, "cache_write", t)

        return SpeakResult(audio_url=audio_url, cached=False)

    # =========================================================================
    # Health
    # =========================================================================

    def get_health_info(self) -> Dict[str, Any]:
        return {
            "ok": True,
            "backend": self._backends.name,
            "provider_configured": self._provider.configured,
            "version": __version__,
        }

    def close(self) -> None:
        self._provider.close()


# =============================================================================
# Global Service Singleton
# =============================================================================

_service: Optional[NarrationService] = None
_service_lock = threading.Lock()


def get_service(settings: Settings) -> NarrationService:
    """
    Get or create the global NarrationService instance.

    Thread-safe lazy singleton. Configuration is validated and backends are
    constructed once, on first call.

    Raises:
        ConfigValidationError: If the settings are invalid.
    """
    global _service
    if _service is None:
        with _service_lock:
            if _service is None:
                config = NarrationServiceConfig.from_settings(settings)
                _service = NarrationService(config, create_backends(config))
                info(_LOG, "service_ready", backend=_service.backends.name,
                     provider_configured=_service.provider.configured)
    return _service


def reset_service() -> None:
    """
    Reset the global service instance.

    Used primarily for testing to ensure clean state between tests.
    """
    global _service
    with _service_lock:
        if _service is not None:
            _service.close()
        _service = None
