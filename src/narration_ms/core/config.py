"""
Configuration Management for narration-ms.

This module provides centralized configuration handling with:
    - Default values (Defaults class)
    - Dataclass-based configuration objects
    - YAML file loading with environment variable overrides
    - Validation with meaningful error messages

Configuration Hierarchy (highest priority first):
    1. Environment variables (ELEVENLABS_KEY, NARRATION_MS_BACKEND, ...)
    2. YAML config file (config/settings.yaml)
    3. Defaults class values

Example settings.yaml:
    backend:
      type: local
      tokens:
        dev-token: parent-123

    rate_limit:
      window_ms: 60000
      max_requests: 10

    provider:
      model_id: eleven_multilingual_v2
      timeout_s: 300

    logging:
      level: 2  # NORMAL
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Tuple
import os
import yaml


class ConfigValidationError(Exception):
    """
    Raised when configuration validation fails.

    This exception is thrown when a configuration value is outside
    acceptable bounds or of the wrong type.
    """
    pass


class Defaults:
    """
    Centralized default configuration values.

    Sections:
        - Rate limiting: per-subject fixed window quota
        - Validation: input field limits
        - Provider: ElevenLabs request parameters
        - Artifacts: blob storage and signed URL lifetime
        - Backend: which collaborator implementations to use
        - CORS / Logging
    """

    # ─────────────────────────────────────────────────────────────────────────
    # Rate Limiting
    # ─────────────────────────────────────────────────────────────────────────
    RATE_LIMIT_FEATURE = "parentVoiceSpeak"  # Counter document name
    RATE_LIMIT_WINDOW_MS = 60 * 1000         # Fixed window length
    RATE_LIMIT_MAX_REQUESTS = 10             # Admissions per window

    # ─────────────────────────────────────────────────────────────────────────
    # Input Validation
    # ─────────────────────────────────────────────────────────────────────────
    VALIDATION_MAX_PAGE_INDEX = 500
    VALIDATION_MAX_TEXT_CHARS = 1000         # Abuse/billing guardrail
    VALIDATION_MIN_VOICE_ID_CHARS = 3
    VALIDATION_LANGUAGES = ("en", "te")

    # ─────────────────────────────────────────────────────────────────────────
    # TTS Provider (ElevenLabs)
    # ─────────────────────────────────────────────────────────────────────────
    PROVIDER_BASE_URL = "https://api.elevenlabs.io"
    PROVIDER_MODEL_ID = "eleven_multilingual_v2"
    PROVIDER_STABILITY = 0.4
    PROVIDER_SIMILARITY_BOOST = 0.75
    PROVIDER_TIMEOUT_S = 300.0               # Overall request budget
    PROVIDER_MIN_AUDIO_BYTES = 200           # Smaller payloads are not audio
    PROVIDER_API_KEY_ENV = "ELEVENLABS_KEY"

    # ─────────────────────────────────────────────────────────────────────────
    # Artifact Storage
    # ─────────────────────────────────────────────────────────────────────────
    ARTIFACTS_SIGNED_URL_TTL_SECONDS = 60 * 60 * 24 * 30  # 30 days
    ARTIFACTS_CONTENT_TYPE = "audio/mpeg"
    ARTIFACTS_BASE_DIR = "./storage"         # Local backend only
    ARTIFACTS_PUBLIC_BASE_URL = "http://localhost:8000"
    ARTIFACTS_SIGNING_SECRET = ""

    # ─────────────────────────────────────────────────────────────────────────
    # Backend Selection
    # ─────────────────────────────────────────────────────────────────────────
    BACKEND_TYPE = "local"                   # local | firebase
    BACKEND_TYPES = ("local", "firebase")

    # ─────────────────────────────────────────────────────────────────────────
    # CORS / Logging
    # ─────────────────────────────────────────────────────────────────────────
    CORS_ALLOW_ORIGIN = "*"
    CORS_MAX_AGE = 3600
    LOGGING_LEVEL = 2                        # 1=MINIMAL, 2=NORMAL, 3=VERBOSE, 4=DEBUG
    LOGGING_TEXT_PREVIEW_CHARS = 40


@dataclass
class RateLimitConfig:
    """Per-subject fixed window quota."""
    feature: str = Defaults.RATE_LIMIT_FEATURE
    window_ms: int = Defaults.RATE_LIMIT_WINDOW_MS
    max_requests: int = Defaults.RATE_LIMIT_MAX_REQUESTS


@dataclass
class ValidationConfig:
    """Limits applied by the request validators."""
    max_page_index: int = Defaults.VALIDATION_MAX_PAGE_INDEX
    max_text_chars: int = Defaults.VALIDATION_MAX_TEXT_CHARS
    min_voice_id_chars: int = Defaults.VALIDATION_MIN_VOICE_ID_CHARS
    languages: Tuple[str, ...] = Defaults.VALIDATION_LANGUAGES


@dataclass
class ProviderConfig:
    """
    ElevenLabs request configuration.

    The API key is a secret: it is read from the ELEVENLABS_KEY environment
    variable first and only falls back to the settings file.
    """
    api_key: str = ""
    base_url: str = Defaults.PROVIDER_BASE_URL
    model_id: str = Defaults.PROVIDER_MODEL_ID
    stability: float = Defaults.PROVIDER_STABILITY
    similarity_boost: float = Defaults.PROVIDER_SIMILARITY_BOOST
    timeout_s: float = Defaults.PROVIDER_TIMEOUT_S
    min_audio_bytes: int = Defaults.PROVIDER_MIN_AUDIO_BYTES

    @property
    def configured(self) -> bool:
        return bool(self.api_key)


@dataclass
class ArtifactConfig:
    """Blob storage and signed URL settings."""
    signed_url_ttl_seconds: int = Defaults.ARTIFACTS_SIGNED_URL_TTL_SECONDS
    content_type: str = Defaults.ARTIFACTS_CONTENT_TYPE
    base_dir: str = Defaults.ARTIFACTS_BASE_DIR
    public_base_url: str = Defaults.ARTIFACTS_PUBLIC_BASE_URL
    signing_secret: str = Defaults.ARTIFACTS_SIGNING_SECRET


@dataclass
class BackendConfig:
    """
    Collaborator backend selection.

    local:    static token table, in-process document store, disk blobs
    firebase: Firebase Auth, Firestore and Cloud Storage (firebase-admin)
    """
    type: str = Defaults.BACKEND_TYPE
    tokens: Dict[str, str] = field(default_factory=dict)
    firebase_bucket: str = ""
    firebase_project_id: str = ""


@dataclass
class CorsConfig:
    allow_origin: str = Defaults.CORS_ALLOW_ORIGIN
    max_age: int = Defaults.CORS_MAX_AGE


@dataclass
class LoggingConfig:
    """
    Logging configuration.

    Log levels:
        1 = MINIMAL: Startup, shutdown, critical errors only
        2 = NORMAL: Request lifecycle, cache status (default)
        3 = VERBOSE: Per-stage timing, detailed flow
        4 = DEBUG: Internal state, full tracing
    """
    text_preview_chars: int = Defaults.LOGGING_TEXT_PREVIEW_CHARS
    level: int = Defaults.LOGGING_LEVEL


@dataclass
class NarrationServiceConfig:
    """
    Validated configuration for NarrationService.

    Usage:
        settings = load_settings("config/settings.yaml")
        config = NarrationServiceConfig.from_settings(settings)
        print(config.rate_limit.max_requests)
    """
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    artifacts: ArtifactConfig = field(default_factory=ArtifactConfig)
    backend: BackendConfig = field(default_factory=BackendConfig)
    cors: CorsConfig = field(default_factory=CorsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "NarrationServiceConfig":
        """
        Create NarrationServiceConfig from Settings with validation.

        Args:
            settings: Raw Settings object loaded from YAML.

        Returns:
            Validated NarrationServiceConfig instance.

        Raises:
            ConfigValidationError: If any value fails validation.
        """
        raw = settings.raw

        # ─────────────────────────────────────────────────────────────────────
        # Rate limiting
        # ─────────────────────────────────────────────────────────────────────
        rl_raw = raw.get("rate_limit", {}) or {}
        rate_limit = RateLimitConfig(
            feature=str(rl_raw.get("feature", Defaults.RATE_LIMIT_FEATURE)),
            window_ms=int(rl_raw.get("window_ms", Defaults.RATE_LIMIT_WINDOW_MS)),
            max_requests=int(rl_raw.get("max_requests", Defaults.RATE_LIMIT_MAX_REQUESTS)),
        )
        cls._validate_positive("rate_limit.window_ms", rate_limit.window_ms)
        cls._validate_positive("rate_limit.max_requests", rate_limit.max_requests)
        if not rate_limit.feature or "/" in rate_limit.feature:
            raise ConfigValidationError(
                f"rate_limit.feature must be a non-empty name without '/', got {rate_limit.feature!r}"
            )

        # ─────────────────────────────────────────────────────────────────────
        # Validation limits
        # ─────────────────────────────────────────────────────────────────────
        val_raw = raw.get("validation", {}) or {}
        languages = val_raw.get("languages", Defaults.VALIDATION_LANGUAGES)
        validation = ValidationConfig(
            max_page_index=int(val_raw.get("max_page_index", Defaults.VALIDATION_MAX_PAGE_INDEX)),
            max_text_chars=int(val_raw.get("max_text_chars", Defaults.VALIDATION_MAX_TEXT_CHARS)),
            min_voice_id_chars=int(val_raw.get("min_voice_id_chars", Defaults.VALIDATION_MIN_VOICE_ID_CHARS)),
            languages=tuple(str(lang).strip().lower() for lang in languages),
        )
        cls._validate_non_negative("validation.max_page_index", validation.max_page_index)
        cls._validate_positive("validation.max_text_chars", validation.max_text_chars)
        cls._validate_positive("validation.min_voice_id_chars", validation.min_voice_id_chars)
        if not validation.languages:
            raise ConfigValidationError("validation.languages must not be empty")

        # ─────────────────────────────────────────────────────────────────────
        # Provider (secret from environment first)
        # ─────────────────────────────────────────────────────────────────────
        prov_raw = raw.get("provider", {}) or {}
        api_key = os.getenv(Defaults.PROVIDER_API_KEY_ENV) or str(prov_raw.get("api_key", "") or "")
        provider = ProviderConfig(
            api_key=api_key.strip(),
            base_url=str(prov_raw.get("base_url", Defaults.PROVIDER_BASE_URL)).rstrip("/"),
            model_id=str(prov_raw.get("model_id", Defaults.PROVIDER_MODEL_ID)),
            stability=float(prov_raw.get("stability", Defaults.PROVIDER_STABILITY)),
            similarity_boost=float(prov_raw.get("similarity_boost", Defaults.PROVIDER_SIMILARITY_BOOST)),
            timeout_s=float(prov_raw.get("timeout_s", Defaults.PROVIDER_TIMEOUT_S)),
            min_audio_bytes=int(prov_raw.get("min_audio_bytes", Defaults.PROVIDER_MIN_AUDIO_BYTES)),
        )
        cls._validate_range("provider.stability", provider.stability, 0.0, 1.0)
        cls._validate_range("provider.similarity_boost", provider.similarity_boost, 0.0, 1.0)
        cls._validate_positive("provider.timeout_s", provider.timeout_s)
        cls._validate_non_negative("provider.min_audio_bytes", provider.min_audio_bytes)

        # ─────────────────────────────────────────────────────────────────────
        # Artifacts
        # ─────────────────────────────────────────────────────────────────────
        art_raw = raw.get("artifacts", {}) or {}
        artifacts = ArtifactConfig(
            signed_url_ttl_seconds=int(art_raw.get(
                "signed_url_ttl_seconds", Defaults.ARTIFACTS_SIGNED_URL_TTL_SECONDS)),
            content_type=str(art_raw.get("content_type", Defaults.ARTIFACTS_CONTENT_TYPE)),
            base_dir=str(art_raw.get("base_dir", Defaults.ARTIFACTS_BASE_DIR)),
            public_base_url=str(art_raw.get(
                "public_base_url", Defaults.ARTIFACTS_PUBLIC_BASE_URL)).rstrip("/"),
            signing_secret=os.getenv("NARRATION_MS_SIGNING_SECRET")
                or str(art_raw.get("signing_secret", Defaults.ARTIFACTS_SIGNING_SECRET) or ""),
        )
        cls._validate_positive("artifacts.signed_url_ttl_seconds", artifacts.signed_url_ttl_seconds)

        # ─────────────────────────────────────────────────────────────────────
        # Backend
        # ─────────────────────────────────────────────────────────────────────
        be_raw = raw.get("backend", {}) or {}
        backend_type = os.getenv("NARRATION_MS_BACKEND") or str(be_raw.get("type", Defaults.BACKEND_TYPE))
        tokens_raw = be_raw.get("tokens", {}) or {}
        if not isinstance(tokens_raw, dict):
            raise ConfigValidationError("backend.tokens must be a mapping of token -> uid")
        backend = BackendConfig(
            type=backend_type.strip().lower(),
            tokens={str(k): str(v) for k, v in tokens_raw.items()},
            firebase_bucket=str(be_raw.get("firebase_bucket", "") or ""),
            firebase_project_id=str(be_raw.get("firebase_project_id", "") or ""),
        )
        if backend.type not in Defaults.BACKEND_TYPES:
            raise ConfigValidationError(
                f"backend.type must be one of {', '.join(Defaults.BACKEND_TYPES)}, got {backend.type!r}"
            )

        # ─────────────────────────────────────────────────────────────────────
        # CORS
        # ─────────────────────────────────────────────────────────────────────
        cors_raw = raw.get("cors", {}) or {}
        cors = CorsConfig(
            allow_origin=str(cors_raw.get("allow_origin", Defaults.CORS_ALLOW_ORIGIN)),
            max_age=int(cors_raw.get("max_age", Defaults.CORS_MAX_AGE)),
        )
        cls._validate_non_negative("cors.max_age", cors.max_age)

        # ─────────────────────────────────────────────────────────────────────
        # Logging
        # ─────────────────────────────────────────────────────────────────────
        logging_raw = raw.get("logging", {}) or {}
        log_level_raw = logging_raw.get("level", Defaults.LOGGING_LEVEL)

        # Handle string log levels (e.g., "INFO", "DEBUG")
        if isinstance(log_level_raw, str):
            level_map = {
                "MINIMAL": 1, "1": 1,
                "NORMAL": 2, "INFO": 2, "2": 2,
                "VERBOSE": 3, "3": 3,
                "DEBUG": 4, "TRACE": 4, "4": 4,
            }
            log_level = level_map.get(log_level_raw.upper(), Defaults.LOGGING_LEVEL)
        else:
            log_level = int(log_level_raw)

        logging_cfg = LoggingConfig(
            text_preview_chars=int(logging_raw.get("text_preview_chars", Defaults.LOGGING_TEXT_PREVIEW_CHARS)),
            level=log_level,
        )
        cls._validate_non_negative("logging.text_preview_chars", logging_cfg.text_preview_chars)
        cls._validate_range("logging.level", logging_cfg.level, 1, 4)

        return cls(
            rate_limit=rate_limit,
            validation=validation,
            provider=provider,
            artifacts=artifacts,
            backend=backend,
            cors=cors,
            logging=logging_cfg,
        )

    @staticmethod
    def _validate_positive(name: str, value: int | float) -> None:
        """Validate that a value is positive (> 0)."""
        if value <= 0:
            raise ConfigValidationError(f"{name} must be positive, got {value}")

    @staticmethod
    def _validate_non_negative(name: str, value: int | float) -> None:
        """Validate that a value is non-negative (>= 0)."""
        if value < 0:
            raise ConfigValidationError(f"{name} must be non-negative, got {value}")

    @staticmethod
    def _validate_range(name: str, value: int | float, min_val: int | float, max_val: int | float) -> None:
        """Validate that a value is within a range [min_val, max_val]."""
        if not (min_val <= value <= max_val):
            raise ConfigValidationError(f"{name} must be between {min_val} and {max_val}, got {value}")


@dataclass(frozen=True)
class Settings:
    """
    Immutable settings container loaded from YAML.

    This is the raw settings object before validation. Use
    get_service_config() to get a validated NarrationServiceConfig.
    """
    raw: Dict[str, Any]

    def get_service_config(self) -> NarrationServiceConfig:
        """
        Get validated NarrationServiceConfig from these settings.

        Raises:
            ConfigValidationError: If validation fails.
        """
        return NarrationServiceConfig.from_settings(self)


def default_settings_path() -> str:
    """Settings path, overridable with NARRATION_MS_SETTINGS."""
    return os.getenv("NARRATION_MS_SETTINGS", "config/settings.yaml")


def load_settings(path: str = "config/settings.yaml") -> Settings:
    """
    Load settings from a YAML configuration file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        Settings object with loaded configuration.

    Raises:
        FileNotFoundError: If the settings file doesn't exist.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"settings file not found: {p.resolve()}")

    with p.open("r", encoding="utf-8") as f:
        raw: Dict[str, Any] = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ConfigValidationError(f"settings file must contain a mapping: {p}")

    return Settings(raw=raw)
