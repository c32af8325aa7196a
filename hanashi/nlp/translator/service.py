from __future__ import annotations
from typing import Protocol
from .base import Translator
from hanashi.contracts import TranslationRequest, TranslationResult


class TranslateApi(Protocol):
    async def translate(self, text: str, target_lang: str) -> str:
        ...


class ServiceTranslator(Translator):
    """Delegates to the backend's /api/translate endpoint."""

    def __init__(self, api: TranslateApi) -> None:
        self.api = api

    @property
    def name(self) -> str:
        return "service"

    async def translate(self, req: TranslationRequest) -> TranslationResult:
        out = await self.api.translate(req.text, req.target_lang)
        return TranslationResult(source_text=req.text, translated_text=out, provider=self.name)
