from __future__ import annotations

import io
import wave
from array import array

import pytest

from hanashi.audio.recorder import RecordingController, RecordingState, pcm16_to_wav
from hanashi.contracts import AudioArtifact, AudioChunk
from hanashi.errors import CaptureError


class FakeDevice:
    def __init__(self, fail: Exception | None = None) -> None:
        self.fail = fail
        self.opened = 0
        self.closed = 0
        self.on_chunk = None
        self.on_inactive = None

    def open(self, on_chunk, on_inactive) -> None:  # noqa: ANN001
        if self.fail is not None:
            raise self.fail
        self.opened += 1
        self.on_chunk = on_chunk
        self.on_inactive = on_inactive

    def close(self) -> None:
        self.closed += 1
        # PortAudio reports the stream as finished when it is stopped
        if self.on_inactive is not None:
            self.on_inactive()

    def feed(self, pcm16: bytes) -> None:
        assert self.on_chunk is not None
        self.on_chunk(AudioChunk(pcm16=pcm16, sample_rate=16000, channels=1))


def _pcm16(frames: int, amplitude: int = 1000) -> bytes:
    return array("h", [amplitude] * frames).tobytes()


def _wav_frames(data: bytes) -> bytes:
    with wave.open(io.BytesIO(data), "rb") as wf:
        assert wf.getsampwidth() == 2
        return wf.readframes(wf.getnframes())


def test_start_stop_emits_concatenated_artifact() -> None:
    device = FakeDevice()
    artifacts: list[AudioArtifact] = []
    rec = RecordingController(device, on_artifact=artifacts.append)

    assert rec.start() == RecordingState.CAPTURING
    device.feed(_pcm16(800, 1))
    device.feed(_pcm16(800, 2))
    out = rec.stop()

    assert rec.state == RecordingState.IDLE
    assert device.closed == 1
    assert artifacts == [out]
    assert out is not None
    assert _wav_frames(out.data) == _pcm16(800, 1) + _pcm16(800, 2)
    assert out.duration == pytest.approx(0.1)
    assert out.mime_type == "audio/wav"


def test_start_while_capturing_is_noop() -> None:
    device = FakeDevice()
    rec = RecordingController(device)
    rec.start()
    device.feed(_pcm16(10))
    assert rec.start() == RecordingState.CAPTURING
    assert device.opened == 1
    out = rec.stop()
    assert out is not None
    assert _wav_frames(out.data) == _pcm16(10)


def test_stop_while_idle_is_noop() -> None:
    device = FakeDevice()
    artifacts: list[AudioArtifact] = []
    rec = RecordingController(device, on_artifact=artifacts.append)
    assert rec.stop() is None
    assert device.closed == 0
    assert artifacts == []


def test_empty_capture_is_still_emitted() -> None:
    device = FakeDevice()
    artifacts: list[AudioArtifact] = []
    rec = RecordingController(device, on_artifact=artifacts.append)
    rec.start()
    out = rec.stop()
    assert out is not None
    assert artifacts == [out]
    assert out.duration == 0.0
    assert _wav_frames(out.data) == b""


def test_explicit_and_external_stop_release_once() -> None:
    device = FakeDevice()
    artifacts: list[AudioArtifact] = []
    rec = RecordingController(device, on_artifact=artifacts.append)
    rec.start()
    device.feed(_pcm16(100))

    rec.stop()
    rec.on_capture_inactive()
    rec.stop()

    assert device.closed == 1
    assert len(artifacts) == 1
    assert rec.state == RecordingState.IDLE


def test_external_stop_finalizes_like_explicit_stop() -> None:
    device = FakeDevice()
    artifacts: list[AudioArtifact] = []
    rec = RecordingController(device, on_artifact=artifacts.append)
    rec.start()
    device.feed(_pcm16(160))

    out = rec.on_capture_inactive()
    assert out is not None
    assert artifacts == [out]
    assert device.closed == 1
    assert rec.state == RecordingState.IDLE


def test_start_failure_stays_idle() -> None:
    device = FakeDevice(fail=CaptureError("permission denied"))
    artifacts: list[AudioArtifact] = []
    rec = RecordingController(device, on_artifact=artifacts.append)
    with pytest.raises(CaptureError, match="permission denied"):
        rec.start()
    assert rec.state == RecordingState.IDLE
    assert artifacts == []


def test_unexpected_open_error_becomes_capture_error() -> None:
    rec = RecordingController(FakeDevice(fail=OSError("no device")))
    with pytest.raises(CaptureError, match="no device"):
        rec.start()
    assert rec.state == RecordingState.IDLE


def test_restart_clears_stale_chunks() -> None:
    device = FakeDevice()
    rec = RecordingController(device)
    rec.start()
    device.feed(_pcm16(50, 7))
    rec.stop()

    rec.start()
    device.feed(_pcm16(20, 9))
    out = rec.stop()
    assert out is not None
    assert _wav_frames(out.data) == _pcm16(20, 9)


def test_capture_error_releases_without_artifact() -> None:
    device = FakeDevice()
    artifacts: list[AudioArtifact] = []
    rec = RecordingController(device, on_artifact=artifacts.append)
    rec.start()
    device.feed(_pcm16(50))
    rec.on_capture_error("stream overflowed fatally")
    assert rec.state == RecordingState.IDLE
    assert device.closed == 1
    assert artifacts == []


def test_close_discards_capture() -> None:
    device = FakeDevice()
    artifacts: list[AudioArtifact] = []
    rec = RecordingController(device, on_artifact=artifacts.append)
    rec.start()
    rec.close()
    rec.close()
    assert device.closed == 1
    assert artifacts == []


def test_chunks_after_stop_are_ignored() -> None:
    device = FakeDevice()
    rec = RecordingController(device)
    rec.start()
    on_chunk = device.on_chunk
    rec.stop()
    on_chunk(AudioChunk(pcm16=_pcm16(10), sample_rate=16000, channels=1))
    rec.start()
    out = rec.stop()
    assert out is not None
    assert _wav_frames(out.data) == b""


def test_pcm16_to_wav_header() -> None:
    data = pcm16_to_wav(_pcm16(16), 16000, 1)
    assert data[:4] == b"RIFF"
    assert data[8:12] == b"WAVE"
