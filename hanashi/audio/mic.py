from __future__ import annotations

import asyncio
import contextlib
from typing import Any, Callable, Optional

from hanashi.contracts import AudioChunk
from hanashi.errors import CaptureError

ChunkCallback = Callable[[AudioChunk], None]
InactiveCallback = Callable[[], None]


def _import_sounddevice():
    try:
        import sounddevice as sd
    except ImportError as e:
        raise CaptureError(
            "sounddevice is not installed. Install with: python -m pip install sounddevice"
        ) from e
    return sd


def _release(stream: Any) -> None:
    try:
        stream.stop()
    finally:
        stream.close()


class SoundDeviceCaptureDevice:
    """
    Microphone capture using the `sounddevice` package (PortAudio).

    PortAudio invokes callbacks on its own thread; when opened from inside a
    running event loop, chunks and the stream-finished notification are
    marshalled back onto that loop so consumers stay single-threaded.
    """

    def __init__(
        self,
        *,
        sample_rate: int = 16000,
        channels: int = 1,
        device: Optional[int] = None,
        blocksize: int = 0,
    ) -> None:
        if sample_rate <= 0:
            raise ValueError("sample_rate must be > 0")
        if channels not in (1, 2):
            raise ValueError("channels must be 1 or 2 (for now)")

        self.sample_rate = int(sample_rate)
        self.channels = int(channels)
        self.device = device
        self.blocksize = int(blocksize)
        self._stream: Any = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._on_chunk: Optional[ChunkCallback] = None
        self._on_inactive: Optional[InactiveCallback] = None
        # bumps on every open/close so late callbacks from an old stream are dropped
        self._generation = 0

    @staticmethod
    def list_devices() -> str:
        sd = _import_sounddevice()
        return str(sd.query_devices())

    @property
    def is_open(self) -> bool:
        return self._stream is not None

    def open(self, on_chunk: ChunkCallback, on_inactive: InactiveCallback) -> None:
        if self._stream is not None:
            return
        sd = _import_sounddevice()
        try:
            self._loop = asyncio.get_running_loop()
        except RuntimeError:
            self._loop = None
        self._on_chunk = on_chunk
        self._on_inactive = on_inactive
        self._generation += 1
        generation = self._generation

        stream = None
        try:
            stream = sd.RawInputStream(
                samplerate=self.sample_rate,
                channels=self.channels,
                dtype="int16",
                device=self.device,
                blocksize=self.blocksize,
                callback=self._on_audio,
                finished_callback=lambda: self._on_finished(generation),
            )
            stream.start()
        except Exception as e:
            self._on_chunk = None
            self._on_inactive = None
            self._generation += 1
            if stream is not None:
                # constructed but never started
                with contextlib.suppress(Exception):
                    _release(stream)
            raise CaptureError(
                "Failed to open microphone stream. "
                "Try --list-devices and select a device id with --device."
            ) from e
        self._stream = stream

    def close(self) -> None:
        stream = self._stream
        self._stream = None
        self._on_chunk = None
        self._on_inactive = None
        self._generation += 1
        if stream is None:
            return
        _release(stream)

    def _dispatch(self, fn: Callable[..., None], *args: Any) -> None:
        loop = self._loop
        if loop is not None and not loop.is_closed():
            loop.call_soon_threadsafe(fn, *args)
        else:
            fn(*args)

    def _on_audio(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        on_chunk = self._on_chunk
        if on_chunk is None:
            return
        # Overflow only means PortAudio dropped frames; keep what we have.
        chunk = AudioChunk(pcm16=bytes(indata), sample_rate=self.sample_rate, channels=self.channels)
        self._dispatch(on_chunk, chunk)

    def _on_finished(self, generation: int) -> None:
        on_inactive = self._on_inactive
        if on_inactive is None or generation != self._generation:
            return
        self._dispatch(on_inactive)
