from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class DisplayLanguage(str, Enum):
    PRIMARY = "en"
    SECONDARY = "ja"


@dataclass(frozen=True)
class Message:
    # seq: stable identity, never reused within a store (even across reset)
    seq: int
    role: Role
    canonical_text: str
    secondary_text: Optional[str] = None

    def as_history_item(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.canonical_text}


@dataclass(frozen=True)
class AudioChunk:
    """
    Raw PCM16 audio chunk delivered by the capture device.
    pcm16: little-endian signed 16-bit PCM bytes (interleaved if channels > 1).
    """
    pcm16: bytes
    sample_rate: int
    channels: int


@dataclass(frozen=True)
class AudioArtifact:
    """One finalized recording, ready to upload."""
    data: bytes
    sample_rate: int
    channels: int
    duration: float
    mime_type: str = "audio/wav"
    filename: str = "recording.wav"


@dataclass(frozen=True)
class TranslationRequest:
    text: str
    # Optional: surrounding lines, unused by the current providers
    context: Optional[Sequence[str]] = None
    source_lang: str = "en"
    target_lang: str = "ja"


@dataclass(frozen=True)
class TranslationResult:
    source_text: str
    translated_text: str
    provider: str


@dataclass(frozen=True)
class WeatherReport:
    location: str
    temperature: float
    description: str = ""
    humidity: Optional[float] = None
    wind_speed: Optional[float] = None


@dataclass(frozen=True)
class ChatReply:
    response: str
    history: tuple[dict[str, str], ...] = ()


@dataclass(frozen=True)
class AssistReply:
    input_type: str
    response: str
    transcribed_text: Optional[str] = None
    history: tuple[dict[str, str], ...] = ()
