import asyncio

import pytest

from hanashi.contracts import TranslationRequest
from hanashi.nlp.translator.factory import get_translator
from hanashi.nlp.translator.service import ServiceTranslator
from hanashi.nlp.translator.stub import StubTranslator


class _Api:
    def __init__(self):
        self.calls = []

    async def translate(self, text, target_lang):
        self.calls.append((text, target_lang))
        return "こんにちは"


def test_stub_translator_deterministic():
    tr = StubTranslator()
    out = asyncio.run(tr.translate(TranslationRequest(text="Hello world.")))
    assert out.provider == "stub"
    assert out.translated_text == "[ja] Hello world."


def test_service_translator_delegates_to_api():
    api = _Api()
    out = asyncio.run(ServiceTranslator(api).translate(TranslationRequest(text="Hello")))
    assert out.translated_text == "こんにちは"
    assert out.provider == "service"
    assert api.calls == [("Hello", "ja")]


def test_factory_reads_env(monkeypatch):
    monkeypatch.setenv("HANASHI_TRANSLATOR", "stub")
    assert isinstance(get_translator(), StubTranslator)


def test_factory_service_needs_api(monkeypatch):
    monkeypatch.delenv("HANASHI_TRANSLATOR", raising=False)
    with pytest.raises(ValueError):
        get_translator()
    assert isinstance(get_translator(api=_Api()), ServiceTranslator)


def test_factory_unknown_provider():
    with pytest.raises(ValueError):
        get_translator("deepl")
