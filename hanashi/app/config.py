from __future__ import annotations

import argparse
import copy
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from platformdirs import user_config_dir, user_documents_dir

ENV_API_BASE_URL = "HANASHI_API_BASE_URL"
ENV_TRANSLATOR = "HANASHI_TRANSLATOR"
TRANSLATORS = ("service", "argos", "stub")

DEFAULTS: dict[str, Any] = {
    "api_base_url": "http://localhost:8000",
    "request_timeout_sec": 120.0,
    "list_devices": False,
    "device": None,
    "sr": 16000,
    "channels": 1,
    "translator": "service",
    "display_language": "en",
    "system_prompt": None,
    "history_dir": None,
    "tts_model": None,
    "debug": False,
}
CONFIG_KEYS: tuple[str, ...] = tuple(DEFAULTS.keys())


@dataclass(frozen=True)
class AppPaths:
    config_dir: Path
    config_path: Path


def app_paths() -> AppPaths:
    config_dir = Path(user_config_dir("Hanashi", "Hanashi"))
    return AppPaths(config_dir=config_dir, config_path=config_dir / "config.json")


def default_history_dir() -> Path:
    return Path(user_documents_dir()) / "Hanashi"


def _load_json_dict(path: Path) -> dict[str, Any]:
    # Accept UTF-8 with or without BOM for Windows-edited config files.
    with path.open("r", encoding="utf-8-sig") as f:
        loaded = json.load(f)
    if not isinstance(loaded, dict):
        raise ValueError(f"config must be a JSON object: {path}")
    return loaded


def _write_json_dict(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)
        f.write("\n")


def _known_only(payload: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key in CONFIG_KEYS:
        if key in payload:
            out[key] = payload[key]
    return out


def _apply_env(values: dict[str, Any]) -> dict[str, Any]:
    base_url = os.getenv(ENV_API_BASE_URL, "").strip()
    if base_url:
        values["api_base_url"] = base_url
    translator = os.getenv(ENV_TRANSLATOR, "").strip().lower()
    if translator:
        values["translator"] = translator
    return values


def load_user_config(config_path: str | None = None) -> tuple[dict[str, Any], Path]:
    defaults = copy.deepcopy(DEFAULTS)
    if config_path:
        chosen = Path(config_path)
        if not chosen.exists():
            raise SystemExit(f"Config file not found: {chosen}")
    else:
        chosen = ensure_user_config_exists(defaults)
    merged = dict(defaults)
    merged.update(_known_only(_load_json_dict(chosen)))
    return _apply_env(merged), chosen


def save_user_config(values: dict[str, Any], config_path: str | None = None) -> Path:
    payload = _known_only(values)
    if config_path:
        path = Path(config_path)
        existing = _known_only(_load_json_dict(path)) if path.exists() else {}
    else:
        path = ensure_user_config_exists()
        existing = _known_only(_load_json_dict(path))
    merged = copy.deepcopy(DEFAULTS)
    merged.update(existing)
    merged.update(payload)
    _write_json_dict(path, _known_only(merged))
    return path


def ensure_user_config_exists(defaults: dict[str, Any] | None = None) -> Path:
    paths = app_paths()
    if paths.config_path.exists():
        return paths.config_path
    _write_json_dict(paths.config_path, defaults or copy.deepcopy(DEFAULTS))
    return paths.config_path


def parser_with_defaults(defaults: dict[str, Any]) -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="hanashi", description="Bilingual voice/text chat client")
    p.add_argument("--config", default=None, help="JSON config path (CLI flags override config)")
    p.add_argument("--api-base-url", default=defaults["api_base_url"], help="assistant backend base URL")
    p.add_argument(
        "--request-timeout-sec",
        type=float,
        default=defaults["request_timeout_sec"],
        help="per-request HTTP timeout (seconds)",
    )
    p.add_argument("--list-devices", action="store_true", help="print audio devices and exit")
    p.add_argument("--device", type=int, default=defaults["device"], help="sounddevice input device id")
    p.add_argument("--sr", type=int, default=defaults["sr"], help="sample rate (Hz)")
    p.add_argument("--channels", type=int, default=defaults["channels"], help="input channels")
    p.add_argument(
        "--translator",
        default=defaults["translator"],
        choices=TRANSLATORS,
        help="translation provider for the secondary display language",
    )
    p.add_argument(
        "--display-language",
        default=defaults["display_language"],
        choices=["en", "ja"],
        help="initial chat display language",
    )
    p.add_argument("--system-prompt", default=defaults["system_prompt"], help="system prompt sent upstream")
    p.add_argument("--history-dir", default=defaults["history_dir"], help="where /save writes chat history")
    p.add_argument("--tts-model", default=defaults["tts_model"], help="text-to-speech model name")
    p.add_argument("--debug", action="store_true", help="log at DEBUG level")
    return p


def resolve_args(argv: list[str] | None = None) -> argparse.Namespace:
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config", default=None)
    pre_args, _ = pre.parse_known_args(argv)
    defaults, _ = load_user_config(config_path=pre_args.config)
    parser = parser_with_defaults(defaults)
    args = parser.parse_args(argv)
    if args.translator not in TRANSLATORS:
        # only reachable through the config file or HANASHI_TRANSLATOR
        parser.error(f"unknown translator {args.translator!r} (choose from {', '.join(TRANSLATORS)})")
    if defaults.get("list_devices"):
        args.list_devices = True
    if defaults.get("debug"):
        args.debug = True
    return args
