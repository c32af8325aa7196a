from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional, Protocol

from hanashi.app.diagnostics import describe_error
from hanashi.app.logging_setup import log_event
from hanashi.audio.recorder import RecordingController
from hanashi.contracts import AudioArtifact, DisplayLanguage, Message, Role
from hanashi.errors import CaptureError, HanashiError, PipelineBusyError, ServiceError
from hanashi.live.pipeline import ProcessingPipeline
from hanashi.nlp.translation_cache import TranslationCache
from hanashi.session.export import export_history
from hanashi.session.store import DEFAULT_GREETING, SessionStore

ErrorCallback = Callable[[str, str], None]


class SpeechService(Protocol):
    async def text_to_speech(
        self,
        text: str,
        *,
        model: Optional[str] = None,
        encoding: Optional[str] = None,
        container: Optional[str] = None,
    ) -> bytes:
        ...


class ChatSessionController:
    """
    The one session aggregate: owns the store, the recorder and the pipeline,
    and exposes commands plus read-only views to whatever front end embeds it.

    Failures are reported through on_error(kind, summary) and the log; none
    of them propagate out of the command methods except PipelineBusyError,
    which tells the caller its input was refused.
    """

    def __init__(
        self,
        *,
        store: SessionStore,
        recorder: RecordingController,
        pipeline: ProcessingPipeline,
        translations: TranslationCache,
        speech: Optional[SpeechService] = None,
        history_dir: Optional[Path] = None,
        greeting: str = DEFAULT_GREETING,
        tts_model: Optional[str] = None,
        on_error: Optional[ErrorCallback] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.store = store
        self.recorder = recorder
        self.pipeline = pipeline
        self.translations = translations
        self.speech = speech
        self.history_dir = history_dir
        self.greeting = greeting
        self.tts_model = tts_model
        self.on_error = on_error
        self.logger = logger
        self._audio_task: Optional[asyncio.Task[Optional[Message]]] = None

        self.recorder.on_artifact = self._on_artifact
        self.translations.on_fill = self.store.attach_translation
        self.pipeline.on_error = self._on_service_error

    # -- views ---------------------------------------------------------

    def snapshot(self) -> tuple[Message, ...]:
        return self.store.snapshot()

    def view(self) -> list[tuple[Role, str]]:
        return [(m.role, self.store.display_text(m)) for m in self.store.snapshot()]

    @property
    def display_language(self) -> DisplayLanguage:
        return self.store.display_language

    @property
    def is_recording(self) -> bool:
        return self.recorder.is_capturing

    @property
    def is_processing(self) -> bool:
        return self.pipeline.busy or self._audio_pending()

    # -- errors --------------------------------------------------------

    def _report(self, kind: str, exc: BaseException) -> None:
        summary = describe_error(exc)
        log_event(self.logger, logging.WARNING, "error_reported", kind=kind, summary=summary)
        if self.on_error is not None:
            self.on_error(kind, summary)

    def _on_service_error(self, err: ServiceError) -> None:
        self._report("service", err)

    def _ensure_idle(self, action: str) -> None:
        if self.is_processing:
            raise PipelineBusyError(f"cannot {action} while a turn is processing")
        if self.recorder.is_capturing:
            raise PipelineBusyError(f"cannot {action} while recording")

    # -- text ----------------------------------------------------------

    async def send_text(self, text: str) -> Optional[Message]:
        text = (text or "").strip()
        if not text:
            return None
        self._ensure_idle("send a message")
        return await self.pipeline.submit_text(text)

    # -- audio ---------------------------------------------------------

    def start_recording(self) -> bool:
        if self.recorder.is_capturing:
            return True
        self._ensure_idle("start recording")
        try:
            self.recorder.start()
        except CaptureError as e:
            self._report("capture", e)
            return False
        return True

    def stop_recording(self) -> Optional[AudioArtifact]:
        return self.recorder.stop()

    def on_recording_inactive(self) -> Optional[AudioArtifact]:
        """The host UI says the recording is over (e.g. its dialog closed)."""
        return self.recorder.on_capture_inactive()

    def _audio_pending(self) -> bool:
        return self._audio_task is not None and not self._audio_task.done()

    def _on_artifact(self, artifact: AudioArtifact) -> None:
        self._audio_task = asyncio.ensure_future(self._run_audio(artifact))

    async def _run_audio(self, artifact: AudioArtifact) -> Optional[Message]:
        try:
            return await self.pipeline.submit_audio(artifact)
        except PipelineBusyError as e:
            self._report("busy", e)
            return None

    async def wait_for_audio(self) -> Optional[Message]:
        task = self._audio_task
        if task is None:
            return None
        try:
            await asyncio.wait({task})
        finally:
            if self._audio_task is task:
                self._audio_task = None
        if task.cancelled():
            return None
        return task.result()

    def cancel_processing(self) -> bool:
        if self.pipeline.cancel():
            return True
        if self._audio_pending() and self.pipeline.active_request is None:
            # artifact handed off but the turn has not reached the pipeline yet
            self._audio_task.cancel()
            log_event(self.logger, logging.INFO, "turn_cancelled_before_submit")
            return True
        return False

    # -- display language ---------------------------------------------

    async def set_display_language(self, language: DisplayLanguage) -> int:
        """Returns how many messages were newly translated."""
        language = DisplayLanguage(language)
        self.store.set_display_language(language)
        log_event(self.logger, logging.INFO, "display_language_set", language=language.value)
        if language != DisplayLanguage.SECONDARY:
            return 0
        return await self.translations.backfill(self.store.snapshot())

    async def toggle_display_language(self) -> DisplayLanguage:
        nxt = (
            DisplayLanguage.SECONDARY
            if self.store.display_language == DisplayLanguage.PRIMARY
            else DisplayLanguage.PRIMARY
        )
        await self.set_display_language(nxt)
        return nxt

    # -- conversation --------------------------------------------------

    def clear_conversation(self) -> Message:
        self._ensure_idle("clear the conversation")
        log_event(self.logger, logging.INFO, "conversation_cleared", dropped=len(self.store))
        return self.store.reset(self.greeting)

    def export_history(self, directory: Optional[Path] = None) -> Optional[Path]:
        target = directory or self.history_dir or Path.cwd()
        try:
            path = export_history(self.store.snapshot(), Path(target))
        except OSError as e:
            self._report("io", e)
            return None
        log_event(self.logger, logging.INFO, "history_exported", path=str(path), messages=len(self.store))
        return path

    async def speak(self, seq: Optional[int] = None, directory: Optional[Path] = None) -> Optional[Path]:
        if self.speech is None:
            return None
        if seq is None:
            message = next((m for m in reversed(self.store.snapshot()) if m.role == Role.ASSISTANT), None)
        else:
            message = self.store.get(seq)
        if message is None:
            return None

        try:
            audio = await self.speech.text_to_speech(message.canonical_text, model=self.tts_model)
        except HanashiError as e:
            self._report("service", e)
            return None

        target = Path(directory or self.history_dir or Path.cwd())
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
        path = target / f"speech-{message.seq}-{stamp}.mp3"
        try:
            target.mkdir(parents=True, exist_ok=True)
            path.write_bytes(audio)
        except OSError as e:
            self._report("io", e)
            return None
        log_event(self.logger, logging.INFO, "speech_saved", seq=message.seq, path=str(path), size=len(audio))
        return path
