from __future__ import annotations

import json
from pathlib import Path

import pytest

from hanashi.app import config as app_config


@pytest.fixture(autouse=True)
def _no_env(monkeypatch) -> None:
    monkeypatch.delenv(app_config.ENV_API_BASE_URL, raising=False)
    monkeypatch.delenv(app_config.ENV_TRANSLATOR, raising=False)


def test_ensure_user_config_exists_creates_file(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(app_config, "user_config_dir", lambda appname, appauthor=None: str(tmp_path))
    created = app_config.ensure_user_config_exists({"translator": "stub", "sr": 16000})
    assert created == tmp_path / "config.json"
    loaded = json.loads(created.read_text(encoding="utf-8"))
    assert loaded["translator"] == "stub"
    assert loaded["sr"] == 16000


def test_load_user_config_ignores_unknown_keys(tmp_path: Path) -> None:
    cfg_path = tmp_path / "user.json"
    cfg_path.write_text(
        json.dumps({"sr": 48000, "translator": "argos", "unexpected": 1}),
        encoding="utf-8",
    )
    loaded, used = app_config.load_user_config(str(cfg_path))
    assert used == cfg_path
    assert loaded["sr"] == 48000
    assert loaded["translator"] == "argos"
    assert loaded["api_base_url"] == "http://localhost:8000"
    assert "unexpected" not in loaded


def test_load_user_config_accepts_bom(tmp_path: Path) -> None:
    cfg_path = tmp_path / "bom.json"
    cfg_path.write_bytes(b"\xef\xbb\xbf" + json.dumps({"display_language": "ja"}).encode("utf-8"))
    loaded, _ = app_config.load_user_config(str(cfg_path))
    assert loaded["display_language"] == "ja"


def test_load_user_config_missing_explicit_path(tmp_path: Path) -> None:
    with pytest.raises(SystemExit):
        app_config.load_user_config(str(tmp_path / "nope.json"))


def test_env_overrides_api_base_url(tmp_path: Path, monkeypatch) -> None:
    cfg_path = tmp_path / "user.json"
    cfg_path.write_text(json.dumps({"api_base_url": "http://from-file:8000"}), encoding="utf-8")
    monkeypatch.setenv(app_config.ENV_API_BASE_URL, "http://from-env:9000")
    loaded, _ = app_config.load_user_config(str(cfg_path))
    assert loaded["api_base_url"] == "http://from-env:9000"


def test_save_user_config_merges_and_filters_keys(tmp_path: Path) -> None:
    cfg_path = tmp_path / "user.json"
    cfg_path.write_text(
        json.dumps({"sr": 16000, "translator": "stub", "debug": False}),
        encoding="utf-8",
    )
    saved = app_config.save_user_config(
        {"translator": "service", "tts_model": "aura", "junk": "x"},
        config_path=str(cfg_path),
    )
    assert saved == cfg_path
    loaded = json.loads(cfg_path.read_text(encoding="utf-8"))
    assert loaded["sr"] == 16000
    assert loaded["translator"] == "service"
    assert loaded["tts_model"] == "aura"
    assert "junk" not in loaded


def test_resolve_args_cli_overrides_config(tmp_path: Path) -> None:
    cfg_path = tmp_path / "app.json"
    cfg_path.write_text(
        json.dumps({"translator": "stub", "sr": 48000, "display_language": "ja"}),
        encoding="utf-8",
    )
    args = app_config.resolve_args(
        ["--config", str(cfg_path), "--translator", "service", "--api-base-url", "http://api:1234"]
    )
    assert args.translator == "service"
    assert args.sr == 48000
    assert args.display_language == "ja"
    assert args.api_base_url == "http://api:1234"
    assert args.list_devices is False


def test_resolve_args_debug_from_config(tmp_path: Path) -> None:
    cfg_path = tmp_path / "app.json"
    cfg_path.write_text(json.dumps({"debug": True}), encoding="utf-8")
    args = app_config.resolve_args(["--config", str(cfg_path)])
    assert args.debug is True


def test_resolve_args_rejects_unknown_language(tmp_path: Path) -> None:
    cfg_path = tmp_path / "app.json"
    cfg_path.write_text("{}", encoding="utf-8")
    with pytest.raises(SystemExit):
        app_config.resolve_args(["--config", str(cfg_path), "--display-language", "fr"])


def test_env_selects_translator_unless_flag_given(tmp_path: Path, monkeypatch) -> None:
    cfg_path = tmp_path / "app.json"
    cfg_path.write_text("{}", encoding="utf-8")
    monkeypatch.setenv(app_config.ENV_TRANSLATOR, "Stub")

    args = app_config.resolve_args(["--config", str(cfg_path)])
    assert args.translator == "stub"

    args = app_config.resolve_args(["--config", str(cfg_path), "--translator", "argos"])
    assert args.translator == "argos"


def test_unknown_translator_from_env_is_rejected(tmp_path: Path, monkeypatch) -> None:
    cfg_path = tmp_path / "app.json"
    cfg_path.write_text("{}", encoding="utf-8")
    monkeypatch.setenv(app_config.ENV_TRANSLATOR, "deepl")
    with pytest.raises(SystemExit):
        app_config.resolve_args(["--config", str(cfg_path)])
