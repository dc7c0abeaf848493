"""
Prometheus Metrics for the Narration Service.

Metrics Exposed:
    narration_requests_total{outcome}         - Requests by final outcome
                                                ("cached", "generated" or an ErrorCode)
    narration_request_duration_seconds        - End-to-end pipeline latency
    narration_cache_lookups_total{result}     - Cache lookups ("hit", "miss", "malformed")
    narration_provider_seconds                - ElevenLabs call latency
    narration_audio_bytes_total               - Bytes of audio synthesized
    narration_rate_limited_total              - Requests rejected by the rate limiter

Usage:
    from narration_ms.core.metrics import metrics

    metrics.record_request("generated", duration=1.8)
    metrics.record_cache("hit")

    content, content_type = metrics.get_metrics_response()
"""
from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)


class NarrationMetrics:
    """
    Metric collection backed by a private CollectorRegistry.

    A private registry keeps these series separate from anything else the
    process registers, and lets tests build fresh instances.
    """

    def __init__(self):
        self._registry = CollectorRegistry()

        self._requests_total = Counter(
            "narration_requests_total",
            "Narration requests by outcome",
            ["outcome"],
            registry=self._registry,
        )
        self._request_duration = Histogram(
            "narration_request_duration_seconds",
            "Narration pipeline duration in seconds",
            buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
            registry=self._registry,
        )
        self._cache_lookups = Counter(
            "narration_cache_lookups_total",
            "Cache lookups by result",
            ["result"],
            registry=self._registry,
        )
        self._provider_seconds = Histogram(
            "narration_provider_seconds",
            "ElevenLabs synthesis call duration in seconds",
            buckets=(0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
            registry=self._registry,
        )
        self._audio_bytes_total = Counter(
            "narration_audio_bytes_total",
            "Total audio bytes synthesized",
            registry=self._registry,
        )
        self._rate_limited_total = Counter(
            "narration_rate_limited_total",
            "Requests rejected by the per-subject rate limiter",
            registry=self._registry,
        )

    def record_request(self, outcome: str, duration: float | None = None) -> None:
        """
        Record a finished request.

        Args:
            outcome: "cached", "generated" or the ErrorCode of the failure.
            duration: Pipeline duration in seconds (omitted when unknown).
        """
        self._requests_total.labels(outcome=outcome).inc()
        if duration is not None and duration >= 0:
            self._request_duration.observe(duration)

    def record_cache(self, result: str) -> None:
        self._cache_lookups.labels(result=result).inc()

    def record_provider_call(self, seconds: float, audio_bytes: int = 0) -> None:
        self._provider_seconds.observe(seconds)
        if audio_bytes > 0:
            self._audio_bytes_total.inc(audio_bytes)

    def record_rate_limited(self) -> None:
        self._rate_limited_total.inc()

    def get_metrics_response(self) -> tuple[bytes, str]:
        """
        Get metrics in Prometheus text format.

        Returns:
            Tuple of (content_bytes, content_type)
        """
        return generate_latest(self._registry), CONTENT_TYPE_LATEST


# Global singleton metrics instance
metrics = NarrationMetrics()
