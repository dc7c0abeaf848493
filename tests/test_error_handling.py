"""
Tests for error codes and the NarrationError hierarchy.

Tests cover:
- Every ErrorCode has a status
- Subclass -> code -> status mapping
- to_dict() body shape with and without detail
- InternalError default message
"""
import pytest

from narration_ms.core.errors import (
    STATUS_BY_CODE,
    ErrorCode,
    InternalError,
    InvalidInputError,
    MisconfiguredError,
    NarrationError,
    PayloadTooLargeError,
    RateLimitedError,
    UnauthenticatedError,
    UpstreamError,
)


class TestStatusTable:

    def test_every_code_has_status(self):
        codes = [v for k, v in vars(ErrorCode).items() if k.isupper()]
        assert sorted(codes) == sorted(STATUS_BY_CODE)

    @pytest.mark.parametrize("cls,status", [
        (UnauthenticatedError, 401),
        (InvalidInputError, 400),
        (PayloadTooLargeError, 413),
        (RateLimitedError, 429),
        (UpstreamError, 502),
        (MisconfiguredError, 500),
        (InternalError, 500),
    ])
    def test_subclass_status(self, cls, status):
        err = cls("message")
        assert err.status_code == status
        assert isinstance(err, NarrationError)

    def test_every_subclass_has_distinct_code(self):
        classes = NarrationError.__subclasses__()
        assert len({cls.code for cls in classes}) == len(classes)


class TestErrorBody:

    def test_message_only(self):
        err = InvalidInputError("Invalid storyId")
        assert err.to_dict() == {"error": "Invalid storyId"}
        assert str(err) == "Invalid storyId"

    def test_with_detail(self):
        err = UpstreamError("ElevenLabs TTS failed", detail="quota exceeded")
        assert err.to_dict() == {"error": "ElevenLabs TTS failed", "detail": "quota exceeded"}

    def test_empty_detail_is_kept(self):
        assert UpstreamError("ElevenLabs TTS failed", detail="").to_dict() == {
            "error": "ElevenLabs TTS failed", "detail": ""}

    def test_internal_default_message(self):
        err = InternalError()
        assert err.message == "Server error"
        assert err.code == ErrorCode.INTERNAL
