from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from hanashi.api.client import AssistantApiClient
from hanashi.app.config import default_history_dir
from hanashi.app.controller import ChatSessionController, ErrorCallback
from hanashi.audio.mic import SoundDeviceCaptureDevice
from hanashi.audio.recorder import RecordingController
from hanashi.contracts import DisplayLanguage
from hanashi.live.pipeline import ProcessingPipeline
from hanashi.nlp.translation_cache import TranslationCache
from hanashi.nlp.translator.factory import get_translator
from hanashi.session.store import SessionStore


@dataclass(frozen=True)
class ChatServices:
    api: AssistantApiClient
    mic: SoundDeviceCaptureDevice
    controller: ChatSessionController


def build_chat_services(
    args: Any,
    *,
    on_error: Optional[ErrorCallback] = None,
    logger: logging.Logger | None = None,
) -> ChatServices:
    api = AssistantApiClient(
        str(args.api_base_url),
        timeout=float(args.request_timeout_sec),
        logger=logger,
    )
    mic = SoundDeviceCaptureDevice(
        sample_rate=int(args.sr),
        channels=int(args.channels),
        device=args.device,
    )
    store = SessionStore(display_language=DisplayLanguage(str(args.display_language)))
    translations = TranslationCache(get_translator(str(args.translator), api=api), logger=logger)
    recorder = RecordingController(mic, sample_rate=int(args.sr), channels=int(args.channels), logger=logger)
    pipeline = ProcessingPipeline(
        store=store,
        assistant=api,
        weather=api,
        translations=translations,
        system_prompt=args.system_prompt or None,
        logger=logger,
    )
    history_dir = Path(args.history_dir) if args.history_dir else default_history_dir()
    controller = ChatSessionController(
        store=store,
        recorder=recorder,
        pipeline=pipeline,
        translations=translations,
        speech=api,
        history_dir=history_dir,
        tts_model=args.tts_model or None,
        on_error=on_error,
        logger=logger,
    )
    return ChatServices(api=api, mic=mic, controller=controller)
