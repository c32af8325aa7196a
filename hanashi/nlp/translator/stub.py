from __future__ import annotations
from .base import Translator
from hanashi.contracts import TranslationRequest, TranslationResult

class StubTranslator(Translator):
    @property
    def name(self) -> str:
        return "stub"

    async def translate(self, req: TranslationRequest) -> TranslationResult:
        # Deterministic, offline
        out = f"[{req.target_lang}] {req.text}"
        return TranslationResult(source_text=req.text, translated_text=out, provider=self.name)
