"""Tests for pyproject.toml and package installation."""
from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path

import pytest

PYPROJECT = Path(__file__).parent.parent / "pyproject.toml"


class TestPackageInstallation:
    """Test that the package is properly installed."""

    def test_version_defined(self):
        """Package has __version__ attribute."""
        import narration_ms
        assert isinstance(narration_ms.__version__, str)
        assert len(narration_ms.__version__) > 0

    def test_core_modules_importable(self):
        """Core modules can be imported without the firebase extra."""
        from narration_ms.api import routes, schemas
        from narration_ms.backends import local
        from narration_ms.core import config, errors, logging, metrics
        from narration_ms.narration import cache, provider
        from narration_ms.services import narration_service

        for module in (routes, schemas, local, config, errors, logging, metrics,
                       cache, provider, narration_service):
            assert module is not None


class TestCLIEntryPoint:
    """Test the CLI entry point."""

    def test_cli_help_exits_zero(self):
        """CLI --help exits with code 0."""
        result = subprocess.run(
            [sys.executable, "-m", "narration_ms.cli", "--help"],
            capture_output=True,
            text=True,
            cwd=str(PYPROJECT.parent),
            env={**os.environ, "PYTHONPATH": str(PYPROJECT.parent / "src")},
        )
        assert result.returncode == 0
        assert "narration-ms" in result.stdout
        assert "check-config" in result.stdout


class TestPyprojectToml:
    """Test pyproject.toml configuration."""

    @pytest.fixture
    def data(self):
        tomllib = pytest.importorskip("tomllib")
        return tomllib.loads(PYPROJECT.read_text())

    def test_project_name(self, data):
        assert data["project"]["name"] == "narration-ms"

    def test_version_matches_package(self, data):
        import narration_ms
        assert data["project"]["version"] == narration_ms.__version__

    def test_dependencies(self, data):
        deps = data["project"]["dependencies"]
        dep_names = [d.split(">=")[0].split("[")[0] for d in deps]
        for name in ("fastapi", "uvicorn", "pydantic", "PyYAML", "prometheus-client", "httpx"):
            assert name in dep_names

    def test_firebase_is_optional(self, data):
        deps = " ".join(data["project"]["dependencies"])
        assert "firebase" not in deps
        assert "firebase" in data["project"]["optional-dependencies"]

    def test_script_entry_point(self, data):
        assert data["project"]["scripts"]["narration-ms"] == "narration_ms.cli:main"
