"""
Async client for the assistant backend.

Endpoints: /api/chat, /api/assist (multipart, cancellable), /api/translate,
/api/weather and /api/text-to-speech. Non-2xx responses carry
``{"detail": ...}``; every failure surfaces as ``ServiceError``.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Optional, Sequence

import httpx

from hanashi.app.logging_setup import log_event
from hanashi.contracts import AssistReply, AudioArtifact, ChatReply, WeatherReport
from hanashi.errors import UNKNOWN_DETAIL, ServiceError
from hanashi.live.cancellation import CancellationToken

History = Sequence[dict[str, str]]


def _error_detail(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return UNKNOWN_DETAIL
    if isinstance(body, dict) and body.get("detail"):
        return str(body["detail"])
    return UNKNOWN_DETAIL


def _history_tuple(raw: Any) -> tuple[dict[str, str], ...]:
    if not isinstance(raw, list):
        return ()
    out = []
    for item in raw:
        if isinstance(item, dict) and "role" in item and "content" in item:
            out.append({"role": str(item["role"]), "content": str(item["content"])})
    return tuple(out)


def _optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class AssistantApiClient:
    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        *,
        timeout: float = 120.0,
        client: Optional[httpx.AsyncClient] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.logger = logger
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "AssistantApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            log_event(self.logger, logging.WARNING, "http_transport_error", path=path, detail=str(e))
            raise ServiceError(f"{type(e).__name__}: {e}") from e
        if resp.status_code >= 400:
            detail = _error_detail(resp)
            log_event(
                self.logger,
                logging.WARNING,
                "http_error_status",
                path=path,
                status_code=resp.status_code,
                detail=detail,
            )
            raise ServiceError(detail, status_code=resp.status_code)
        return resp

    async def _json(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        resp = await self._request(method, path, **kwargs)
        try:
            body = resp.json()
        except ValueError as e:
            raise ServiceError(f"invalid JSON from {path}", status_code=resp.status_code) from e
        if not isinstance(body, dict):
            raise ServiceError(f"unexpected payload from {path}", status_code=resp.status_code)
        return body

    async def chat(
        self,
        message: str,
        history: History = (),
        system_prompt: Optional[str] = None,
    ) -> ChatReply:
        payload: dict[str, Any] = {"message": message, "conversation_history": list(history)}
        if system_prompt:
            payload["system_prompt"] = system_prompt
        body = await self._json("POST", "/api/chat", json=payload)
        return ChatReply(
            response=str(body.get("response", "")),
            history=_history_tuple(body.get("conversation_history")),
        )

    async def assist(
        self,
        *,
        message: Optional[str] = None,
        audio: Optional[AudioArtifact] = None,
        history: Optional[History] = None,
        system_prompt: Optional[str] = None,
        token: Optional[CancellationToken] = None,
    ) -> AssistReply:
        data: dict[str, str] = {}
        files: dict[str, Any] = {}
        if message:
            data["message"] = message
        if history is not None:
            data["conversation_history"] = json.dumps(list(history), ensure_ascii=False)
        if system_prompt:
            data["system_prompt"] = system_prompt
        if audio is not None:
            files["audio_file"] = (audio.filename, audio.data, audio.mime_type)

        call = self._json("POST", "/api/assist", data=data, files=files or None)
        body = await (token.run(call) if token is not None else call)
        transcript = body.get("transcribed_text")
        return AssistReply(
            input_type=str(body.get("input_type", "audio" if audio is not None else "text")),
            response=str(body.get("response", "")),
            transcribed_text=str(transcript) if transcript else None,
            history=_history_tuple(body.get("conversation_history")),
        )

    async def translate(self, text: str, target_lang: str) -> str:
        body = await self._json("POST", "/api/translate", json={"text": text, "target_lang": target_lang})
        return str(body.get("translated_text", ""))

    async def get_weather(self, location: str) -> WeatherReport:
        body = await self._json("GET", "/api/weather", params={"location": location})
        temperature = _optional_float(body.get("temperature"))
        if temperature is None:
            raise ServiceError("weather payload has no temperature")
        return WeatherReport(
            location=str(body.get("location") or location),
            temperature=temperature,
            description=str(body.get("weather_description") or body.get("description") or ""),
            humidity=_optional_float(body.get("humidity")),
            wind_speed=_optional_float(body.get("wind_speed")),
        )

    async def text_to_speech(
        self,
        text: str,
        *,
        model: Optional[str] = None,
        encoding: Optional[str] = None,
        container: Optional[str] = None,
    ) -> bytes:
        payload = {"text": text, "model": model, "encoding": encoding, "container": container}
        payload = {k: v for k, v in payload.items() if v is not None}
        resp = await self._request("POST", "/api/text-to-speech", json=payload)
        return resp.content
