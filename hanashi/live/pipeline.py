# hanashi/live/pipeline.py
from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol, Sequence

from hanashi.app.logging_setup import log_event
from hanashi.app.state import ProcessingRequest, RequestKind
from hanashi.contracts import (
    AssistReply,
    AudioArtifact,
    ChatReply,
    DisplayLanguage,
    Message,
    Role,
    WeatherReport,
)
from hanashi.errors import PipelineBusyError, RequestCancelled, ServiceError
from hanashi.live.cancellation import CancellationToken
from hanashi.nlp.intent import extract_weather_location
from hanashi.nlp.translation_cache import TranslationCache
from hanashi.session.store import SessionStore

History = Sequence[dict[str, str]]


class AssistantService(Protocol):
    async def chat(self, message: str, history: History = (), system_prompt: Optional[str] = None) -> ChatReply:
        ...

    async def assist(
        self,
        *,
        message: Optional[str] = None,
        audio: Optional[AudioArtifact] = None,
        history: Optional[History] = None,
        system_prompt: Optional[str] = None,
        token: Optional[CancellationToken] = None,
    ) -> AssistReply:
        ...


class WeatherService(Protocol):
    async def get_weather(self, location: str) -> WeatherReport:
        ...


ErrorCallback = Callable[[ServiceError], None]
BusyCallback = Callable[[bool], None]


def _fmt_optional(value: Optional[float]) -> str:
    if value is None:
        return "NA"
    return f"{value:g}"


def format_weather_context(report: WeatherReport) -> str:
    return (
        f"Location: {report.location}, Temperature: {report.temperature:g}°C, "
        f"Condition: {report.description or 'Unknown'}, "
        f"Wind Speed: {_fmt_optional(report.wind_speed)} km/h, "
        f"Humidity: {_fmt_optional(report.humidity)}%"
    )


def augment_with_weather(text: str, report: WeatherReport) -> str:
    return f"{text}\n\n[Weather Information: {format_weather_context(report)}]"


class ProcessingPipeline:
    """
    Runs one chat turn at a time against the assistant backend.

    A second submission while a turn is pending raises PipelineBusyError and
    leaves the session untouched. Store appends for a turn always happen in
    user-then-assistant order, after the awaited call that produced them.
    """

    def __init__(
        self,
        *,
        store: SessionStore,
        assistant: AssistantService,
        weather: Optional[WeatherService] = None,
        translations: Optional[TranslationCache] = None,
        system_prompt: Optional[str] = None,
        on_error: Optional[ErrorCallback] = None,
        on_busy_change: Optional[BusyCallback] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.store = store
        self.assistant = assistant
        self.weather = weather
        self.translations = translations
        self.system_prompt = system_prompt
        self.on_error = on_error
        self.on_busy_change = on_busy_change
        self.logger = logger
        self._active: Optional[ProcessingRequest] = None
        self.last_request: Optional[ProcessingRequest] = None

    @property
    def busy(self) -> bool:
        return self._active is not None

    @property
    def active_request(self) -> Optional[ProcessingRequest]:
        return self._active

    def _begin(self, kind: RequestKind) -> ProcessingRequest:
        if self._active is not None:
            log_event(
                self.logger,
                logging.INFO,
                "turn_rejected_busy",
                kind=kind.value,
                active_id=self._active.request_id,
            )
            raise PipelineBusyError(f"a {self._active.kind.value} turn is already in flight")
        req = ProcessingRequest(kind=kind)
        self._active = req
        self.last_request = req
        log_event(self.logger, logging.INFO, "turn_submitted", request_id=req.request_id, kind=kind.value)
        if self.on_busy_change is not None:
            self.on_busy_change(True)
        return req

    def _end(self, req: ProcessingRequest) -> None:
        if req.is_pending:
            # unexpected exception or task cancellation on the way out
            req.set_failed("turn aborted")
        if self._active is req:
            self._active = None
            if self.on_busy_change is not None:
                self.on_busy_change(False)

    def _fail(self, req: ProcessingRequest, err: ServiceError) -> None:
        req.set_failed(str(err))
        log_event(
            self.logger,
            logging.WARNING,
            "turn_failed",
            request_id=req.request_id,
            kind=req.kind.value,
            status_code=err.status_code,
            detail=err.detail,
        )
        if self.on_error is not None:
            self.on_error(err)

    async def _weather_context(self, text: str) -> Optional[WeatherReport]:
        if self.weather is None:
            return None
        location = extract_weather_location(text)
        if location is None:
            return None
        try:
            report = await self.weather.get_weather(location)
        except ServiceError as e:
            log_event(self.logger, logging.INFO, "weather_lookup_failed", location=location, detail=str(e))
            return None
        log_event(self.logger, logging.INFO, "weather_lookup_ok", location=location)
        return report

    async def _append_reply(self, response: str) -> Message:
        message = self.store.append(Role.ASSISTANT, response)
        if self.translations is not None and self.store.display_language == DisplayLanguage.SECONDARY:
            # best effort; the cache logs and swallows translator failures
            await self.translations.get(message)
        return message

    async def submit_text(self, text: str) -> Optional[Message]:
        """Returns the assistant message, or None if the turn failed."""
        req = self._begin(RequestKind.TEXT)
        try:
            history = self.store.history_payload()
            self.store.append(Role.USER, text)

            outgoing = text
            report = await self._weather_context(text)
            if report is not None:
                outgoing = augment_with_weather(text, report)

            try:
                reply = await self.assistant.chat(outgoing, history, self.system_prompt)
            except ServiceError as e:
                self._fail(req, e)
                return None

            req.set_completed()
            log_event(self.logger, logging.INFO, "turn_completed", request_id=req.request_id, kind="text")
            return await self._append_reply(reply.response)
        finally:
            self._end(req)

    async def submit_audio(self, artifact: AudioArtifact) -> Optional[Message]:
        """Returns the assistant message, or None if the turn failed or was cancelled."""
        req = self._begin(RequestKind.AUDIO)
        try:
            history = self.store.history_payload()
            try:
                reply = await self.assistant.assist(
                    audio=artifact,
                    history=history,
                    system_prompt=self.system_prompt,
                    token=req.token,
                )
                # a callee that ignores the token still must not commit a cancelled turn
                req.token.raise_if_cancelled()
            except RequestCancelled:
                req.set_cancelled()
                log_event(self.logger, logging.INFO, "turn_cancelled", request_id=req.request_id)
                return None
            except ServiceError as e:
                self._fail(req, e)
                return None

            req.set_completed()
            log_event(
                self.logger,
                logging.INFO,
                "turn_completed",
                request_id=req.request_id,
                kind="audio",
                transcribed=bool(reply.transcribed_text),
            )
            if reply.transcribed_text:
                self.store.append(Role.USER, reply.transcribed_text)
            return await self._append_reply(reply.response)
        finally:
            self._end(req)

    def cancel(self) -> bool:
        """Abort the in-flight audio turn, if any."""
        req = self._active
        if req is None or req.kind != RequestKind.AUDIO:
            return False
        return req.token.cancel()
