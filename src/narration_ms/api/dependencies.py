"""
FastAPI Dependency Injection Providers.

Hierarchy:
    1. get_settings() - loads and caches the YAML settings
    2. get_narration_service() - creates/returns the singleton NarrationService

Tests replace get_narration_service through app.dependency_overrides to
wire a service with a mock provider and a temporary storage directory.
"""
from __future__ import annotations

from functools import lru_cache

from narration_ms.core.config import Settings, default_settings_path, load_settings
from narration_ms.core.logging import get_logger, warn
from narration_ms.services.narration_service import NarrationService, get_service

_LOG = get_logger("narration-ms.api")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Load and cache application settings.

    The path comes from NARRATION_MS_SETTINGS (default config/settings.yaml).
    A missing file means defaults plus environment overrides.
    """
    path = default_settings_path()
    try:
        return load_settings(path)
    except FileNotFoundError:
        warn(_LOG, "settings_missing", path=path, hint="using defaults")
        return Settings(raw={})


def get_narration_service() -> NarrationService:
    """Get the singleton NarrationService instance."""
    return get_service(get_settings())
