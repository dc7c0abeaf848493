"""
Command-Line Interface for narration-ms.

Usage Examples:
    # Run the HTTP server
    narration-ms serve --host 0.0.0.0 --port 8000

    # Use another settings file
    narration-ms serve --settings config/prod.yaml

    # Validate settings and print a summary
    narration-ms check-config
    narration-ms check-config --settings config/prod.yaml --json

Environment Variables:
    NARRATION_MS_SETTINGS: Settings file path (default config/settings.yaml)
    ELEVENLABS_KEY: ElevenLabs API key
    NARRATION_MS_BACKEND: Backend override (local/firebase)
    NARRATION_MS_LOG_LEVEL: Log level (1-4)
"""

from __future__ import annotations

import argparse
import json
import os
from typing import Any, Dict, List, Optional

from narration_ms import __version__
from narration_ms.core.config import (
    ConfigValidationError,
    NarrationServiceConfig,
    default_settings_path,
    load_settings,
)
from narration_ms.core.logging import configure_logging, get_logger, info


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="narration-ms", description="Parent voice narration service")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP server (uvicorn)")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve.add_argument("--port", type=int, default=8000, help="Bind port")
    serve.add_argument("--settings", help="Settings YAML path")

    check = sub.add_parser("check-config", help="Validate settings and print a summary")
    check.add_argument("--settings", help="Settings YAML path")
    check.add_argument("--json", action="store_true", help="Print the summary as JSON")

    return parser.parse_args(argv)


def _config_summary(config: NarrationServiceConfig, path: str) -> Dict[str, Any]:
    """Summary of the effective configuration. Secrets are reported as present/absent."""
    return {
        "settings": path,
        "backend": config.backend.type,
        "static_tokens": len(config.backend.tokens),
        "provider_configured": config.provider.configured,
        "model_id": config.provider.model_id,
        "rate_limit": {
            "feature": config.rate_limit.feature,
            "window_ms": config.rate_limit.window_ms,
            "max_requests": config.rate_limit.max_requests,
        },
        "validation": {
            "max_page_index": config.validation.max_page_index,
            "max_text_chars": config.validation.max_text_chars,
            "languages": list(config.validation.languages),
        },
        "signed_url_ttl_seconds": config.artifacts.signed_url_ttl_seconds,
        "log_level": config.logging.level,
    }


def _check_config(path: str, as_json: bool) -> int:
    try:
        settings = load_settings(path)
        config = NarrationServiceConfig.from_settings(settings)
    except (FileNotFoundError, ConfigValidationError, ValueError) as e:
        if as_json:
            print(json.dumps({"ok": False, "settings": path, "error": str(e)}))
        else:
            print(f"[FAILED] {e}")
        return 1

    summary = _config_summary(config, path)
    if as_json:
        print(json.dumps({"ok": True, **summary}, ensure_ascii=False))
    else:
        for key, value in summary.items():
            print(f"{key}: {value}")
        if not config.provider.configured:
            print("[WARN] ELEVENLABS_KEY is not set; speak requests will return 500")
        print("CONFIG_OK")
    return 0


def _serve(host: str, port: int) -> int:
    import uvicorn

    log = get_logger("narration-ms.cli")
    info(log, "serve", host=host, port=port, settings=default_settings_path())
    uvicorn.run("narration_ms.main:app", host=host, port=port, log_level="warning")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    CLI entry point.

    Returns:
        Process exit code.
    """
    args = _parse_args(argv)

    if args.settings:
        os.environ["NARRATION_MS_SETTINGS"] = args.settings
    path = default_settings_path()

    if args.command == "check-config":
        return _check_config(path, args.json)

    configure_logging()
    return _serve(args.host, args.port)


if __name__ == "__main__":
    raise SystemExit(main())
