from __future__ import annotations

import asyncio
import logging
from typing import Callable, Iterable, Optional

from hanashi.app.logging_setup import log_event
from hanashi.contracts import DisplayLanguage, Message, TranslationRequest
from hanashi.nlp.translator.base import Translator

FillCallback = Callable[[int, str], None]


class TranslationCache:
    """
    Lazy seq -> secondary-language text store in front of a Translator.

    Entries are never evicted. Failed fills store nothing, so a later get()
    retries. Concurrent get() calls for the same message share one request.
    """

    def __init__(
        self,
        translator: Translator,
        *,
        target_lang: str = DisplayLanguage.SECONDARY.value,
        on_fill: Optional[FillCallback] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.translator = translator
        self.target_lang = target_lang
        self.on_fill = on_fill
        self.logger = logger
        self._entries: dict[int, str] = {}
        self._inflight: dict[int, asyncio.Task[Optional[str]]] = {}

    def cached(self, seq: int) -> Optional[str]:
        return self._entries.get(seq)

    def __contains__(self, seq: int) -> bool:
        return seq in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, message: Message) -> Optional[str]:
        hit = self._entries.get(message.seq)
        if hit is not None:
            return hit
        if not message.canonical_text.strip():
            return None

        task = self._inflight.get(message.seq)
        if task is None:
            task = asyncio.ensure_future(self._fill(message))
            self._inflight[message.seq] = task
            task.add_done_callback(lambda _t, seq=message.seq: self._inflight.pop(seq, None))
        return await asyncio.shield(task)

    async def _fill(self, message: Message) -> Optional[str]:
        req = TranslationRequest(text=message.canonical_text, target_lang=self.target_lang)
        try:
            res = await self.translator.translate(req)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log_event(
                self.logger,
                logging.WARNING,
                "translation_failed",
                seq=message.seq,
                provider=self.translator.name,
                detail=str(e),
            )
            return None

        text = str(res.translated_text or "")
        if not text:
            return None
        self._entries[message.seq] = text
        log_event(self.logger, logging.DEBUG, "translation_cached", seq=message.seq, provider=res.provider)
        if self.on_fill is not None:
            self.on_fill(message.seq, text)
        return text

    async def backfill(self, messages: Iterable[Message]) -> int:
        """Fill every message without a cached rendering; returns the number of new entries."""
        missing = [m for m in messages if m.seq not in self._entries]
        if not missing:
            return 0
        before = len(self._entries)
        await asyncio.gather(*(self.get(m) for m in missing))
        filled = len(self._entries) - before
        log_event(self.logger, logging.INFO, "translation_backfill", requested=len(missing), filled=filled)
        return filled
