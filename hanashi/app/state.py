from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from enum import Enum

from hanashi.live.cancellation import CancellationToken

_request_ids = itertools.count(1)


class RequestKind(str, Enum):
    TEXT = "text"
    AUDIO = "audio"


class RequestState(str, Enum):
    PENDING = "pending"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ProcessingRequest:
    """One turn. Leaves PENDING exactly once; later transitions are ignored."""

    kind: RequestKind
    token: CancellationToken = field(default_factory=CancellationToken)
    request_id: int = field(default_factory=lambda: next(_request_ids))
    state: RequestState = RequestState.PENDING
    last_error: str | None = None

    @property
    def is_pending(self) -> bool:
        return self.state == RequestState.PENDING

    def set_completed(self) -> bool:
        return self._finish(RequestState.COMPLETED)

    def set_cancelled(self) -> bool:
        return self._finish(RequestState.CANCELLED)

    def set_failed(self, detail: str) -> bool:
        if not self._finish(RequestState.FAILED):
            return False
        self.last_error = detail
        return True

    def _finish(self, state: RequestState) -> bool:
        if self.state != RequestState.PENDING:
            return False
        self.state = state
        return True
