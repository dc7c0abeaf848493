"""
Error Codes and Exceptions for the narration pipeline.

Every failure the pipeline can produce is a NarrationError subclass bound
to exactly one ErrorCode. The HTTP status is looked up from STATUS_BY_CODE,
so the code -> status mapping lives in one table and covers every code.

    ErrorCode            Status  Raised by
    -------------------  ------  -----------------------------------------
    UNAUTHENTICATED      401     AuthGate (missing / invalid bearer token)
    INVALID_INPUT        400     RequestValidator
    PAYLOAD_TOO_LARGE    413     RequestValidator (text length only)
    RATE_LIMITED         429     RateLimiter
    UPSTREAM_FAILURE     502     ElevenLabsProvider
    MISCONFIGURED        500     NarrationService (missing provider key)
    INTERNAL             500     anything unclassified

Response Body:
    {"error": "<message>"}                       for most failures
    {"error": "<message>", "detail": "<text>"}   when detail is present
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class ErrorCode:
    """Machine-readable error codes."""
    UNAUTHENTICATED = "UNAUTHENTICATED"
    INVALID_INPUT = "INVALID_INPUT"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
    RATE_LIMITED = "RATE_LIMITED"
    UPSTREAM_FAILURE = "UPSTREAM_FAILURE"
    MISCONFIGURED = "MISCONFIGURED"
    INTERNAL = "INTERNAL"


STATUS_BY_CODE: Dict[str, int] = {
    ErrorCode.UNAUTHENTICATED: 401,
    ErrorCode.INVALID_INPUT: 400,
    ErrorCode.PAYLOAD_TOO_LARGE: 413,
    ErrorCode.RATE_LIMITED: 429,
    ErrorCode.UPSTREAM_FAILURE: 502,
    ErrorCode.MISCONFIGURED: 500,
    ErrorCode.INTERNAL: 500,
}


class NarrationError(Exception):
    """
    Base exception for pipeline failures.

    Attributes:
        message: Human-readable message returned to the caller.
        code: One of ErrorCode.
        detail: Optional diagnostic text (upstream response body).
    """
    code: str = ErrorCode.INTERNAL

    def __init__(self, message: str, detail: Optional[str] = None):
        self.message = message
        self.detail = detail
        super().__init__(message)

    @property
    def status_code(self) -> int:
        return STATUS_BY_CODE[self.code]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON error body."""
        body: Dict[str, Any] = {"error": self.message}
        if self.detail is not None:
            body["detail"] = self.detail
        return body


class UnauthenticatedError(NarrationError):
    """Missing or unverifiable bearer credential."""
    code = ErrorCode.UNAUTHENTICATED


class InvalidInputError(NarrationError):
    """Malformed request field."""
    code = ErrorCode.INVALID_INPUT


class PayloadTooLargeError(NarrationError):
    """Text exceeds the per-request character limit."""
    code = ErrorCode.PAYLOAD_TOO_LARGE


class RateLimitedError(NarrationError):
    """Subject exhausted its quota for the current window."""
    code = ErrorCode.RATE_LIMITED


class UpstreamError(NarrationError):
    """The TTS provider failed or returned unusable audio."""
    code = ErrorCode.UPSTREAM_FAILURE


class MisconfiguredError(NarrationError):
    """A required secret or setting is missing at runtime."""
    code = ErrorCode.MISCONFIGURED


class InternalError(NarrationError):
    """Unclassified failure. The message is always generic."""
    code = ErrorCode.INTERNAL

    def __init__(self, message: str = "Server error", detail: Optional[str] = None):
        super().__init__(message, detail)
