"""
Tests for configuration validation and defaults.

Tests cover:
- NarrationServiceConfig.from_settings() - all sections
- Defaults class values
- ConfigValidationError on invalid values
- Environment overrides (ELEVENLABS_KEY, NARRATION_MS_BACKEND)
- String log level coercion ("DEBUG" -> 4)
- load_settings() from YAML
"""

import pytest

from narration_ms.core.config import (
    ConfigValidationError,
    Defaults,
    NarrationServiceConfig,
    Settings,
    default_settings_path,
    load_settings,
)


class TestDefaults:
    """Tests for Defaults class values."""

    def test_rate_limit_defaults(self):
        assert Defaults.RATE_LIMIT_FEATURE == "parentVoiceSpeak"
        assert Defaults.RATE_LIMIT_WINDOW_MS == 60_000
        assert Defaults.RATE_LIMIT_MAX_REQUESTS == 10

    def test_validation_defaults(self):
        assert Defaults.VALIDATION_MAX_PAGE_INDEX == 500
        assert Defaults.VALIDATION_MAX_TEXT_CHARS == 1000
        assert Defaults.VALIDATION_MIN_VOICE_ID_CHARS == 3
        assert Defaults.VALIDATION_LANGUAGES == ("en", "te")

    def test_provider_defaults(self):
        assert Defaults.PROVIDER_MODEL_ID == "eleven_multilingual_v2"
        assert Defaults.PROVIDER_STABILITY == 0.4
        assert Defaults.PROVIDER_SIMILARITY_BOOST == 0.75
        assert Defaults.PROVIDER_MIN_AUDIO_BYTES == 200
        assert Defaults.PROVIDER_TIMEOUT_S == 300.0

    def test_signed_url_ttl_is_thirty_days(self):
        assert Defaults.ARTIFACTS_SIGNED_URL_TTL_SECONDS == 30 * 24 * 3600


class TestFromSettings:
    """Tests for NarrationServiceConfig.from_settings()."""

    def test_empty_settings_use_defaults(self):
        config = NarrationServiceConfig.from_settings(Settings(raw={}))
        assert config.rate_limit.max_requests == 10
        assert config.validation.languages == ("en", "te")
        assert config.backend.type == "local"
        assert config.cors.allow_origin == "*"
        assert config.cors.max_age == 3600
        assert config.provider.configured is False

    def test_sections_override_defaults(self):
        settings = Settings(raw={
            "rate_limit": {"max_requests": 3, "window_ms": 1000},
            "validation": {"languages": [" EN ", "Te", "hi"]},
            "provider": {"api_key": "abc", "base_url": "http://tts.local/"},
            "backend": {"tokens": {"t1": "u1"}},
        })
        config = NarrationServiceConfig.from_settings(settings)
        assert config.rate_limit.max_requests == 3
        assert config.rate_limit.window_ms == 1000
        assert config.validation.languages == ("en", "te", "hi")
        assert config.provider.configured is True
        assert config.provider.base_url == "http://tts.local"
        assert config.backend.tokens == {"t1": "u1"}

    def test_api_key_from_environment_wins(self, monkeypatch):
        monkeypatch.setenv("ELEVENLABS_KEY", "from-env")
        config = NarrationServiceConfig.from_settings(Settings(raw={"provider": {"api_key": "from-file"}}))
        assert config.provider.api_key == "from-env"

    def test_backend_from_environment(self, monkeypatch):
        monkeypatch.setenv("NARRATION_MS_BACKEND", "FIREBASE")
        config = NarrationServiceConfig.from_settings(Settings(raw={}))
        assert config.backend.type == "firebase"

    def test_string_log_level(self):
        config = NarrationServiceConfig.from_settings(Settings(raw={"logging": {"level": "DEBUG"}}))
        assert config.logging.level == 4


class TestValidation:
    """Tests for ConfigValidationError on bad values."""

    @pytest.mark.parametrize("section,values", [
        ("rate_limit", {"window_ms": 0}),
        ("rate_limit", {"max_requests": -1}),
        ("rate_limit", {"feature": "a/b"}),
        ("validation", {"max_text_chars": 0}),
        ("validation", {"languages": []}),
        ("provider", {"stability": 1.5}),
        ("provider", {"timeout_s": 0}),
        ("artifacts", {"signed_url_ttl_seconds": 0}),
        ("backend", {"type": "s3"}),
        ("backend", {"tokens": ["not", "a", "mapping"]}),
        ("logging", {"level": 9}),
    ])
    def test_invalid_values_rejected(self, section, values):
        with pytest.raises(ConfigValidationError):
            NarrationServiceConfig.from_settings(Settings(raw={section: values}))


class TestLoadSettings:
    """Tests for YAML loading."""

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("backend:\n  type: local\nrate_limit:\n  max_requests: 5\n", encoding="utf-8")
        settings = load_settings(str(path))
        assert settings.raw["backend"] == {"type": "local"}
        assert settings.get_service_config().rate_limit.max_requests == 5

    def test_backend_env_override(self, tmp_path, monkeypatch):
        path = tmp_path / "settings.yaml"
        path.write_text("backend:\n  type: local\n", encoding="utf-8")
        monkeypatch.setenv("NARRATION_MS_BACKEND", "Firebase")
        assert load_settings(str(path)).get_service_config().backend.type == "firebase"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(str(tmp_path / "nope.yaml"))

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigValidationError):
            load_settings(str(path))

    def test_empty_file_is_empty_settings(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("", encoding="utf-8")
        assert load_settings(str(path)).raw == {}

    def test_settings_path_env(self, monkeypatch):
        monkeypatch.setenv("NARRATION_MS_SETTINGS", "/etc/narration.yaml")
        assert default_settings_path() == "/etc/narration.yaml"

    def test_shipped_settings_are_valid(self):
        from pathlib import Path

        path = Path(__file__).resolve().parent.parent / "config" / "settings.yaml"
        config = load_settings(str(path)).get_service_config()
        assert config.backend.type == "local"
        assert config.rate_limit.max_requests == 10
