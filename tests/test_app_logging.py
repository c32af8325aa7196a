from __future__ import annotations

import json
import logging
from pathlib import Path

from hanashi.app import config as app_config
from hanashi.app.logging_setup import log_event, setup_app_logger


def _lines(path: Path) -> list[dict]:
    return [json.loads(ln) for ln in path.read_text(encoding="utf-8").splitlines() if ln.strip()]


def _close(logger: logging.Logger) -> None:
    for h in logger.handlers:
        h.close()
    logger.handlers.clear()


def test_setup_app_logger_writes_json_line(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(app_config, "user_config_dir", lambda appname, appauthor=None: str(tmp_path))
    logger, log_dir, log_path = setup_app_logger("hanashi.test")

    log_event(logger, logging.INFO, "turn_completed", request_id=7, kind="text")
    for h in logger.handlers:
        h.flush()

    assert log_dir == tmp_path / "logs"
    assert log_path.name == "hanashi.log"
    payload = _lines(log_path)[-1]
    assert payload["message"] == "turn_completed"
    assert payload["request_id"] == 7
    assert payload["kind"] == "text"
    assert payload["level"] == "INFO"
    _close(logger)


def test_debug_level_and_non_json_values(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(app_config, "user_config_dir", lambda appname, appauthor=None: str(tmp_path))
    logger, _, log_path = setup_app_logger("hanashi.test.debug", debug=True)

    log_event(logger, logging.DEBUG, "saved", path=tmp_path / "x.json", text="天気")
    for h in logger.handlers:
        h.flush()

    payload = _lines(log_path)[-1]
    assert payload["level"] == "DEBUG"
    assert payload["path"] == str(tmp_path / "x.json")
    assert payload["text"] == "天気"
    _close(logger)


def test_log_event_without_logger_is_noop() -> None:
    log_event(None, logging.INFO, "ignored", value=1)
