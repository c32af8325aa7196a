from __future__ import annotations
import os
from typing import Optional
from .base import Translator
from .argos import ArgosTranslator
from .service import ServiceTranslator, TranslateApi
from .stub import StubTranslator

def get_translator(provider: str | None = None, api: Optional[TranslateApi] = None) -> Translator:
    provider = (provider or os.getenv("HANASHI_TRANSLATOR", "service")).lower().strip()

    if provider == "service":
        if api is None:
            raise ValueError("service translator needs an API client")
        return ServiceTranslator(api)
    if provider == "argos":
        return ArgosTranslator()
    if provider == "stub":
        return StubTranslator()

    raise ValueError(f"Unknown translator provider: {provider}")
