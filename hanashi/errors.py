"""Error taxonomy shared by the session controller and its collaborators."""

from __future__ import annotations

from typing import Optional

UNKNOWN_DETAIL = "Unknown error"


class HanashiError(RuntimeError):
    pass


class CaptureError(HanashiError):
    """Microphone unavailable, denied, or failed while capturing."""


class ServiceError(HanashiError):
    """Non-2xx response or transport failure from the assistant backend."""

    def __init__(self, detail: str, status_code: Optional[int] = None) -> None:
        self.detail = detail or UNKNOWN_DETAIL
        self.status_code = status_code
        if status_code is None:
            super().__init__(self.detail)
        else:
            super().__init__(f"HTTP {status_code}: {self.detail}")


class RequestCancelled(HanashiError):
    """Raised when a turn's cancellation token fires. Not a failure."""


class PipelineBusyError(HanashiError):
    """A turn is already in flight; the new submission was refused."""
