"""
Input Validation for the speak endpoint.

Pure functions, no I/O. validate_request() checks the five body fields in a
fixed order and stops at the first failure, so garbage input is rejected
before any billed call is made.

Validation Rules (in order):
    1. storyId:   string, non-empty after trimming
    2. pageIndex: integer in [0, max_page_index]; numeric strings and
                  integral floats are coerced, booleans are not numbers
    3. lang:      trimmed + lower-cased, must be a supported language
    4. voiceId:   string, trimmed length >= min_voice_id_chars
    5. text:      string, non-empty after trimming, at most max_text_chars

Error Handling:
    All failures raise InvalidInputError (400) except an over-long text,
    which raises PayloadTooLargeError (413).

Usage:
    from narration_ms.services.validators import validate_request

    req = validate_request(body, config.validation)
    key = derive_cache_key(req.voice_id, req.story_id, req.page_index, req.language)
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from narration_ms.core.config import ValidationConfig
from narration_ms.core.errors import InvalidInputError, PayloadTooLargeError


@dataclass(frozen=True)
class NarrationRequest:
    """
    A validated, normalized speak request.

    All string fields are trimmed; language is lower-cased.
    """
    story_id: str
    page_index: int
    language: str
    voice_id: str
    text: str


def validate_story_id(story_id: Any) -> str:
    if not isinstance(story_id, str) or not story_id.strip():
        raise InvalidInputError("Invalid storyId")
    return story_id.strip()


def _coerce_number(value: Any) -> Optional[float]:
    """Numeric value of an int, float or numeric string; None otherwise."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str) and value.strip() and "_" not in value:
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def validate_page_index(page_index: Any, max_page_index: int = 500) -> int:
    """
    Validate and coerce pageIndex.

    Examples:
        >>> validate_page_index("12")
        12
        >>> validate_page_index(3.0)
        3
    """
    number = _coerce_number(page_index)
    if number is None or (isinstance(number, float) and not (math.isfinite(number) and number.is_integer())):
        raise InvalidInputError("Invalid pageIndex")

    value = int(number)
    if value < 0 or value > max_page_index:
        raise InvalidInputError("Invalid pageIndex")
    return value


def normalize_language(language: Any, supported: tuple = ("en", "te")) -> Optional[str]:
    """Trimmed, lower-cased language tag if supported, else None."""
    if not isinstance(language, str):
        return None
    lang = language.strip().lower()
    return lang if lang in supported else None


def validate_language(language: Any, supported: tuple = ("en", "te")) -> str:
    lang = normalize_language(language, supported)
    if lang is None:
        options = " or ".join(f"'{s}'" for s in supported)
        raise InvalidInputError(f"Invalid lang (must be {options})")
    return lang


def validate_voice_id(voice_id: Any, min_chars: int = 3) -> str:
    if not isinstance(voice_id, str) or len(voice_id.strip()) < min_chars:
        raise InvalidInputError("Invalid voiceId")
    return voice_id.strip()


def validate_text(text: Any, max_chars: int = 1000) -> str:
    """
    Validate narration text.

    Length is counted in code points after trimming.

    Raises:
        InvalidInputError: Not a string, or blank.
        PayloadTooLargeError: Longer than ``max_chars``.
    """
    if not isinstance(text, str):
        raise InvalidInputError("Invalid text")

    clean = text.strip()
    if not clean:
        raise InvalidInputError("Empty text")

    if len(clean) > max_chars:
        raise PayloadTooLargeError(f"Text too long (max {max_chars} chars)")

    return clean


def validate_request(body: Mapping[str, Any], config: Optional[ValidationConfig] = None) -> NarrationRequest:
    """
    Validate a decoded JSON body.

    Args:
        body: Request body; unknown fields are ignored.
        config: Limits (defaults when omitted).

    Returns:
        NarrationRequest with normalized fields.

    Raises:
        InvalidInputError: First malformed field.
        PayloadTooLargeError: Text over the limit.
    """
    config = config or ValidationConfig()

    story_id = validate_story_id(body.get("storyId"))
    page_index = validate_page_index(body.get("pageIndex"), config.max_page_index)
    language = validate_language(body.get("lang"), config.languages)
    voice_id = validate_voice_id(body.get("voiceId"), config.min_voice_id_chars)
    text = validate_text(body.get("text"), config.max_text_chars)

    return NarrationRequest(
        story_id=story_id,
        page_index=page_index,
        language=language,
        voice_id=voice_id,
        text=text,
    )
