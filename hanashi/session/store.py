from __future__ import annotations

import itertools
from dataclasses import replace
from typing import Callable, Optional

from hanashi.contracts import DisplayLanguage, Message, Role

DEFAULT_GREETING = "Hello! I'm your AI assistant. How can I help you today?"

ChangeCallback = Callable[[tuple[Message, ...]], None]


class SessionStore:
    """
    Append-only message log plus the display-language selector.

    Messages only enter through append(); reset() is the only way to drop
    them. Observers get immutable snapshots, never the backing list.
    """

    def __init__(
        self,
        greeting: str = DEFAULT_GREETING,
        *,
        display_language: DisplayLanguage = DisplayLanguage.PRIMARY,
        on_change: Optional[ChangeCallback] = None,
    ) -> None:
        self._seq = itertools.count()
        self._messages: list[Message] = []
        self.display_language = DisplayLanguage(display_language)
        self.on_change = on_change
        if greeting:
            self._messages.append(self._new(Role.ASSISTANT, greeting))

    def _new(self, role: Role, text: str) -> Message:
        return Message(seq=next(self._seq), role=Role(role), canonical_text=str(text))

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change(self.snapshot())

    def append(self, role: Role, text: str) -> Message:
        message = self._new(role, text)
        self._messages.append(message)
        self._notify()
        return message

    def reset(self, greeting: str = DEFAULT_GREETING) -> Message:
        message = self._new(Role.ASSISTANT, greeting)
        self._messages = [message]
        self._notify()
        return message

    def snapshot(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    def history_payload(self) -> list[dict[str, str]]:
        return [m.as_history_item() for m in self._messages]

    def get(self, seq: int) -> Optional[Message]:
        for message in self._messages:
            if message.seq == seq:
                return message
        return None

    def attach_translation(self, seq: int, text: str) -> bool:
        for i, message in enumerate(self._messages):
            if message.seq != seq:
                continue
            if message.secondary_text is not None:
                return False
            self._messages[i] = replace(message, secondary_text=text)
            self._notify()
            return True
        return False

    def set_display_language(self, language: DisplayLanguage) -> bool:
        language = DisplayLanguage(language)
        if language == self.display_language:
            return False
        self.display_language = language
        self._notify()
        return True

    def display_text(self, message: Message) -> str:
        if self.display_language == DisplayLanguage.SECONDARY and message.secondary_text:
            return message.secondary_text
        return message.canonical_text

    def __len__(self) -> int:
        return len(self._messages)
