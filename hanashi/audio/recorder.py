from __future__ import annotations

import io
import logging
import wave
from enum import Enum
from typing import Callable, Optional, Protocol

from hanashi.app.logging_setup import log_event
from hanashi.contracts import AudioArtifact, AudioChunk
from hanashi.errors import CaptureError


class CaptureDevice(Protocol):
    def open(self, on_chunk: Callable[[AudioChunk], None], on_inactive: Callable[[], None]) -> None:
        ...

    def close(self) -> None:
        ...


class RecordingState(str, Enum):
    IDLE = "idle"
    CAPTURING = "capturing"


ArtifactCallback = Callable[[AudioArtifact], None]


def pcm16_to_wav(pcm16: bytes, sample_rate: int, channels: int) -> bytes:
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(2)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm16)
    return buf.getvalue()


class RecordingController:
    """
    Idle/Capturing state machine around one capture device.

    Every exit from Capturing goes through _finish(), which is the only place
    the device is released, so release and emission happen once per capture
    session no matter how many stop signals arrive.
    """

    def __init__(
        self,
        device: CaptureDevice,
        *,
        sample_rate: int = 16000,
        channels: int = 1,
        on_artifact: Optional[ArtifactCallback] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.device = device
        self.sample_rate = int(sample_rate)
        self.channels = int(channels)
        self.on_artifact = on_artifact
        self.logger = logger
        self._state = RecordingState.IDLE
        self._chunks: list[bytes] = []

    @property
    def state(self) -> RecordingState:
        return self._state

    @property
    def is_capturing(self) -> bool:
        return self._state == RecordingState.CAPTURING

    def start(self) -> RecordingState:
        if self._state == RecordingState.CAPTURING:
            return self._state
        self._chunks = []
        try:
            self.device.open(self._on_chunk, self.on_capture_inactive)
        except CaptureError as e:
            log_event(self.logger, logging.WARNING, "capture_failed", detail=str(e))
            raise
        except Exception as e:
            log_event(self.logger, logging.WARNING, "capture_failed", detail=str(e))
            raise CaptureError(str(e) or "capture device unavailable") from e
        self._state = RecordingState.CAPTURING
        log_event(self.logger, logging.INFO, "capture_started")
        return self._state

    def stop(self) -> Optional[AudioArtifact]:
        if self._state != RecordingState.CAPTURING:
            return None
        return self._finish(emit=True)

    def on_capture_inactive(self) -> Optional[AudioArtifact]:
        """The embedding context reports recording is no longer active."""
        if self._state != RecordingState.CAPTURING:
            return None
        log_event(self.logger, logging.INFO, "capture_stopped_externally")
        return self._finish(emit=True)

    def on_capture_error(self, detail: str) -> None:
        if self._state != RecordingState.CAPTURING:
            return
        log_event(self.logger, logging.WARNING, "capture_failed", detail=detail)
        self._finish(emit=False)

    def close(self) -> None:
        """Release the device without emitting anything (shutdown path)."""
        if self._state != RecordingState.CAPTURING:
            return
        log_event(self.logger, logging.INFO, "capture_discarded", chunks=len(self._chunks))
        self._finish(emit=False)

    def _on_chunk(self, chunk: AudioChunk) -> None:
        if self._state != RecordingState.CAPTURING:
            return
        if chunk.pcm16:
            self._chunks.append(chunk.pcm16)

    def _finish(self, *, emit: bool) -> Optional[AudioArtifact]:
        # Flip state first: device.close() may synchronously report inactive.
        self._state = RecordingState.IDLE
        pcm16 = b"".join(self._chunks)
        self._chunks = []
        try:
            self.device.close()
        except Exception:
            if self.logger is not None:
                self.logger.exception("capture_release_failed")

        if not emit:
            return None

        frame_bytes = 2 * self.channels
        artifact = AudioArtifact(
            data=pcm16_to_wav(pcm16, self.sample_rate, self.channels),
            sample_rate=self.sample_rate,
            channels=self.channels,
            duration=len(pcm16) / float(frame_bytes * self.sample_rate),
        )
        log_event(
            self.logger,
            logging.INFO,
            "capture_finalized",
            pcm_bytes=len(pcm16),
            duration=round(artifact.duration, 3),
        )
        if self.on_artifact is not None:
            self.on_artifact(artifact)
        return artifact
