"""
ElevenLabs Text-to-Speech Provider.

One synchronous HTTP call per synthesis:

    POST {base_url}/v1/text-to-speech/{voice_id}
    xi-api-key: <secret>
    Accept: audio/mpeg

    {"text": ..., "model_id": ..., "voice_settings": {"stability": ..., "similarity_boost": ...}}

Failure Classification (all UpstreamError, 502):
    - non-2xx response      -> "ElevenLabs TTS failed", detail = response body
    - 2xx, too few bytes    -> "Invalid audio returned from ElevenLabs"
    - connect / timeout     -> "ElevenLabs TTS unreachable", detail = error text

No retries.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

import httpx

from narration_ms.core.config import Defaults, ProviderConfig
from narration_ms.core.errors import UpstreamError
from narration_ms.core.logging import debug, error, get_logger, info
from narration_ms.core.metrics import metrics
from narration_ms.utils.timeit import timeit

_LOG = get_logger("narration-ms.provider")


@dataclass
class AudioArtifact:
    """Synthesized audio bytes plus their content type."""
    data: bytes
    content_type: str = Defaults.ARTIFACTS_CONTENT_TYPE

    @property
    def byte_length(self) -> int:
        return len(self.data)


class ElevenLabsProvider:
    """
    Synchronous ElevenLabs client.

    Args:
        config: Provider settings (key, model, voice settings, timeout).
        client: Optional preconfigured httpx.Client (tests pass one built on
            httpx.MockTransport). When omitted the provider owns its client.
    """

    name = "elevenlabs"

    def __init__(self, config: ProviderConfig, client: Optional[httpx.Client] = None):
        self._config = config
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=httpx.Timeout(config.timeout_s))

    @property
    def configured(self) -> bool:
        return self._config.configured

    def _url(self, voice_id: str) -> str:
        return f"{self._config.base_url}/v1/text-to-speech/{quote(voice_id, safe='')}"

    def _payload(self, text: str) -> dict:
        return {
            "text": text,
            "model_id": self._config.model_id,
            "voice_settings": {
                "stability": self._config.stability,
                "similarity_boost": self._config.similarity_boost,
            },
        }

    def synthesize(self, text: str, voice_id: str) -> AudioArtifact:
        """
        Synthesize ``text`` with ``voice_id``.

        Args:
            text: Clean, validated text.
            voice_id: Trimmed ElevenLabs voice identifier.

        Returns:
            AudioArtifact with MP3 bytes.

        Raises:
            UpstreamError: On any provider failure (see module docstring).
        """
        headers = {
            "xi-api-key": self._config.api_key,
            "Content-Type": "application/json",
            "Accept": "audio/mpeg",
        }
        debug(_LOG, "provider_request", voice_id=voice_id, chars=len(text),
              model_id=self._config.model_id)

        try:
            with timeit("provider") as t:
                resp = self._client.post(
                    self._url(voice_id),
                    headers=headers,
                    json=self._payload(text),
                    timeout=self._config.timeout_s,
                )
        except httpx.HTTPError as e:
            metrics.record_provider_call(t.seconds)
            error(_LOG, "provider_unreachable", error=str(e), error_type=type(e).__name__)
            raise UpstreamError("ElevenLabs TTS unreachable", detail=str(e)) from e

        if not resp.is_success:
            metrics.record_provider_call(t.seconds)
            error(_LOG, "provider_failed", status=resp.status_code,
                  seconds=round(t.seconds, 3))
            raise UpstreamError("ElevenLabs TTS failed", detail=resp.text)

        audio = resp.content
        if len(audio) < self._config.min_audio_bytes:
            metrics.record_provider_call(t.seconds)
            error(_LOG, "provider_invalid_audio", bytes=len(audio),
                  min_bytes=self._config.min_audio_bytes)
            raise UpstreamError("Invalid audio returned from ElevenLabs")

        metrics.record_provider_call(t.seconds, audio_bytes=len(audio))
        info(_LOG, "provider_ok", status=resp.status_code, bytes=len(audio),
             seconds=round(t.seconds, 3))
        return AudioArtifact(data=audio, content_type=Defaults.ARTIFACTS_CONTENT_TYPE)

    def close(self) -> None:
        """Close the HTTP client if this provider created it."""
        if self._owns_client:
            self._client.close()
