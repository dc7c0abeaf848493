"""
narration-ms: Parent Voice Narration Microservice.

Turns a page of story text into an MP3 read in a parent's cloned
ElevenLabs voice, and hands back a signed URL to it.

Key Features:
    - Bearer token authentication (Firebase Auth or a static token table)
    - Per-parent fixed window rate limiting inside a store transaction
    - Per-parent narration cache keyed by voice, story, page and language
    - ElevenLabs synthesis with upstream failure classification
    - Durable artifact storage with 30-day signed URLs
    - Prometheus metrics and structured logging

Example Usage:
    >>> from narration_ms.core.config import Settings
    >>> from narration_ms.services import get_service
    >>>
    >>> service = get_service(Settings(raw={"backend": {"tokens": {"t": "u1"}}}))
    >>> service.get_health_info()["backend"]
    'local'
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
