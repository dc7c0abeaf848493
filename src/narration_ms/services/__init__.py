"""Service layer: authentication, rate limiting, validation and the pipeline."""
from narration_ms.services.narration_service import (
    NarrationService,
    SpeakResult,
    get_service,
    reset_service,
)

__all__ = ["NarrationService", "SpeakResult", "get_service", "reset_service"]
