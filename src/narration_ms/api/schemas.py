"""
API Request/Response Schemas.

The speak route reads its body leniently (field errors must come back as
the pipeline's own 400/413 messages, not FastAPI 422s), so SpeakRequest
only documents the body shape in OpenAPI. Responses are built from the
models below.

Example Request:
    {
        "storyId": "story-42",
        "pageIndex": 3,
        "lang": "en",
        "voiceId": "21m00Tcm4TlvDq8ikWAM",
        "text": "Once upon a time..."
    }

Example Response:
    {"audioUrl": "https://...", "cached": false}
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class SpeakRequest(BaseModel):
    """Body of POST /v1/parent-voice/speak."""
    storyId: str = Field(..., description="Story identifier (non-empty)")
    pageIndex: int = Field(..., ge=0, le=500, description="Page number, 0-500")
    lang: str = Field(..., description="'en' or 'te' (case and whitespace insensitive)")
    voiceId: str = Field(..., min_length=3, description="ElevenLabs voice id")
    text: str = Field(..., max_length=1000, description="Narration text, at most 1000 characters")


class SpeakResponse(BaseModel):
    audioUrl: str = Field(..., description="Signed, time-bounded MP3 URL")
    cached: bool = Field(..., description="True when served without a provider call")


class ErrorResponse(BaseModel):
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    ok: bool
    backend: str
    provider_configured: bool
    version: str
