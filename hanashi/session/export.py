from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from hanashi.contracts import Message


def history_to_json(messages: Iterable[Message]) -> str:
    """Canonical text only; translations never leave the client."""
    payload = [m.as_history_item() for m in messages]
    return json.dumps(payload, ensure_ascii=False, indent=2)


def history_filename(now: Optional[datetime] = None) -> str:
    stamp = (now or datetime.now(timezone.utc)).isoformat(timespec="milliseconds")
    # ':' is not allowed in Windows filenames
    return f"chat-history-{stamp.replace(':', '-')}.json"


def export_history(
    messages: Iterable[Message],
    directory: Path,
    now: Optional[datetime] = None,
) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / history_filename(now)
    with path.open("w", encoding="utf-8") as f:
        f.write(history_to_json(messages))
        f.write("\n")
    return path
