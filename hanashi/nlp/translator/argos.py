from __future__ import annotations
import asyncio
from .base import Translator
from hanashi.contracts import TranslationRequest, TranslationResult

class ArgosTranslator(Translator):
    """Offline en->ja via Argos Translate; runs in a worker thread."""

    def __init__(self, from_code: str = "en", to_code: str = "ja", auto_install: bool = True):
        self.from_code = from_code
        self.to_code = to_code
        self.auto_install = auto_install
        self._ready = False

    @property
    def name(self) -> str:
        return "argos"

    def _ensure_ready(self) -> None:
        if self._ready:
            return

        import argostranslate.package
        import argostranslate.translate

        installed = argostranslate.translate.get_installed_languages()
        have_from = any(l.code == self.from_code for l in installed)
        have_to = any(l.code == self.to_code for l in installed)

        if not (have_from and have_to):
            if not self.auto_install:
                raise RuntimeError("Argos model not installed and auto_install=False")

            argostranslate.package.update_package_index()
            available = argostranslate.package.get_available_packages()

            pkg = None
            for p in available:
                if p.from_code == self.from_code and p.to_code == self.to_code:
                    pkg = p
                    break
            if pkg is None:
                raise RuntimeError(f"No Argos package found for {self.from_code}->{self.to_code}")

            path = pkg.download()
            argostranslate.package.install_from_path(path)

        self._ready = True

    def _translate_sync(self, text: str) -> str:
        self._ensure_ready()
        import argostranslate.translate
        return argostranslate.translate.translate(text, self.from_code, self.to_code)

    async def translate(self, req: TranslationRequest) -> TranslationResult:
        if req.target_lang != self.to_code:
            raise ValueError(f"ArgosTranslator is configured for {self.to_code}, not {req.target_lang}")
        out = await asyncio.to_thread(self._translate_sync, req.text)
        return TranslationResult(source_text=req.text, translated_text=out, provider=self.name)
