import json

import pytest
import yaml

from narration_ms import __version__, cli


def _write_settings(tmp_path, **raw):
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.safe_dump(raw), encoding="utf-8")
    return str(path)


def test_check_config_ok(tmp_path, capsys):
    path = _write_settings(tmp_path, backend={"type": "local", "tokens": {"t": "u"}},
                           provider={"api_key": "k"})

    code = cli.main(["check-config", "--settings", path])
    assert code == 0
    out = capsys.readouterr().out
    assert "CONFIG_OK" in out
    assert "backend: local" in out
    assert "[WARN]" not in out


def test_check_config_warns_without_key(tmp_path, capsys):
    path = _write_settings(tmp_path, backend={"type": "local"})

    assert cli.main(["check-config", "--settings", path]) == 0
    out = capsys.readouterr().out
    assert "ELEVENLABS_KEY is not set" in out
    assert "CONFIG_OK" in out


def test_check_config_json(tmp_path, capsys):
    path = _write_settings(tmp_path, rate_limit={"max_requests": 5}, provider={"api_key": "secret-key"})

    assert cli.main(["check-config", "--settings", path, "--json"]) == 0
    raw = capsys.readouterr().out
    data = json.loads(raw)
    assert data["ok"] is True
    assert data["provider_configured"] is True
    assert data["rate_limit"]["max_requests"] == 5
    assert data["validation"]["languages"] == ["en", "te"]
    assert "secret-key" not in raw


def test_check_config_missing_file(tmp_path, capsys):
    code = cli.main(["check-config", "--settings", str(tmp_path / "nope.yaml")])
    assert code == 1
    assert "[FAILED]" in capsys.readouterr().out


def test_check_config_invalid_value(tmp_path, capsys):
    path = _write_settings(tmp_path, rate_limit={"max_requests": 0})

    assert cli.main(["check-config", "--settings", path, "--json"]) == 1
    data = json.loads(capsys.readouterr().out)
    assert data["ok"] is False
    assert "max_requests" in data["error"]


def test_version(capsys):
    with pytest.raises(SystemExit) as exc:
        cli.main(["--version"])
    assert exc.value.code == 0
    assert __version__ in capsys.readouterr().out


def test_command_required():
    with pytest.raises(SystemExit) as exc:
        cli.main([])
    assert exc.value.code == 2
