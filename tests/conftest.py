"""Shared fixtures: fake ElevenLabs transport, fake clock, wired local service."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx
import pytest

from narration_ms.backends import create_backends
from narration_ms.core.config import NarrationServiceConfig, Settings
from narration_ms.narration.provider import ElevenLabsProvider
from narration_ms.services.narration_service import NarrationService, reset_service
from narration_ms.services.rate_limit import RateLimiter

# Anything >= 200 bytes passes the plausibility check
MP3_BYTES = b"ID3\x04\x00\x00\x00\x00\x00\x00" + b"\xff\xfb\x90\x00" * 256

TOKENS = {"token-a": "parent-a", "token-b": "parent-b"}
AUTH_A = {"Authorization": "Bearer token-a"}
AUTH_B = {"Authorization": "Bearer token-b"}


def speak_body(**overrides: Any) -> Dict[str, Any]:
    body = {
        "storyId": "story-1",
        "pageIndex": 3,
        "lang": "en",
        "voiceId": "voice-abc",
        "text": "Once upon a time there was a little fox.",
    }
    body.update(overrides)
    return body


class FakeElevenLabs:
    """httpx.MockTransport handler that records requests and returns a canned reply."""

    def __init__(self, status: int = 200, content: bytes = MP3_BYTES, exc: Optional[Exception] = None):
        self.status = status
        self.content = content
        self.exc = exc
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        return httpx.Response(self.status, content=self.content)

    @property
    def calls(self) -> int:
        return len(self.requests)


class FakeClock:
    """Settable clock returning seconds, like time.time."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_settings(tmp_path, **sections: Dict[str, Any]) -> Settings:
    raw: Dict[str, Any] = {
        "backend": {"type": "local", "tokens": dict(TOKENS)},
        "provider": {"api_key": "test-key"},
        "artifacts": {
            "base_dir": str(tmp_path / "storage"),
            "public_base_url": "http://testserver",
            "signing_secret": "test-secret",
        },
        "logging": {"level": 1},
    }
    for name, values in sections.items():
        raw.setdefault(name, {}).update(values)
    return Settings(raw=raw)


def make_service(
    tmp_path,
    fake: Optional[FakeElevenLabs] = None,
    clock: Optional[FakeClock] = None,
    **sections: Dict[str, Any],
) -> NarrationService:
    config = NarrationServiceConfig.from_settings(make_settings(tmp_path, **sections))
    backends = create_backends(config)
    fake = fake or FakeElevenLabs()
    provider = ElevenLabsProvider(config.provider, client=httpx.Client(transport=httpx.MockTransport(fake)))
    rate_limiter = RateLimiter(backends.documents, config.rate_limit, clock=clock or FakeClock())
    return NarrationService(config, backends, provider=provider, rate_limiter=rate_limiter)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    """Keep host environment overrides out of the tests."""
    for name in (
        "ELEVENLABS_KEY",
        "NARRATION_MS_BACKEND",
        "NARRATION_MS_SIGNING_SECRET",
        "NARRATION_MS_SETTINGS",
    ):
        monkeypatch.delenv(name, raising=False)
    yield
    reset_service()


@pytest.fixture
def fake_provider() -> FakeElevenLabs:
    return FakeElevenLabs()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def service(tmp_path, fake_provider, clock) -> NarrationService:
    return make_service(tmp_path, fake_provider, clock)
