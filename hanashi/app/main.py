from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from hanashi.app.config import resolve_args
from hanashi.app.controller import ChatSessionController
from hanashi.app.logging_setup import setup_app_logger
from hanashi.app.services import build_chat_services
from hanashi.audio.mic import SoundDeviceCaptureDevice
from hanashi.contracts import DisplayLanguage, Message
from hanashi.errors import CaptureError, PipelineBusyError

HELP = """\
Type a message and press Enter to chat. Commands:
  /rec            start recording from the microphone
  /stop           stop recording and send the audio
  /cancel         abort the audio turn being processed
  /lang [en|ja]   switch (or toggle) the display language
  /clear          start a new conversation
  /save [DIR]     export the conversation as JSON
  /speak          save speech audio for the last assistant reply
  /help           show this help
  /quit           exit"""


class TranscriptPrinter:
    """Prints each message once, in the current display language."""

    def __init__(self, controller: Optional[ChatSessionController] = None) -> None:
        self.controller = controller
        self._last_seq = -1
        self._shown: dict[int, str] = {}
        self.muted = False

    def on_change(self, snapshot: tuple[Message, ...]) -> None:
        if self.controller is None or self.muted:
            return
        for message in snapshot:
            text = self.controller.store.display_text(message)
            if message.seq > self._last_seq:
                self._print(message, text)
                self._last_seq = message.seq
            elif self._shown.get(message.seq) != text and text == message.secondary_text:
                # translation arrived after the message was printed
                self._print(message, text, tag=f"/{self.controller.display_language.value}")

    def reprint(self) -> None:
        if self.controller is None:
            return
        self._last_seq = -1
        self._shown.clear()
        self.on_change(self.controller.snapshot())

    def _print(self, message: Message, text: str, tag: str = "") -> None:
        self._shown[message.seq] = text
        print(f"[{message.role.value}{tag}] {text}")


def _print_error(kind: str, summary: str) -> None:
    print(f"! {kind}: {summary}", file=sys.stderr)


async def _handle_command(controller: ChatSessionController, printer: TranscriptPrinter, line: str) -> bool:
    cmd, _, rest = line.partition(" ")
    rest = rest.strip()
    if cmd in ("/quit", "/exit"):
        return False
    if cmd == "/help":
        print(HELP)
    elif cmd == "/rec":
        if controller.start_recording():
            print("(recording... /stop to send)")
    elif cmd == "/stop":
        if controller.stop_recording() is not None:
            print("(processing audio... /cancel to abort)")
    elif cmd == "/cancel":
        if controller.cancel_processing():
            print("(cancelled)")
    elif cmd == "/lang":
        printer.muted = True
        try:
            if rest:
                await controller.set_display_language(DisplayLanguage(rest))
            else:
                await controller.toggle_display_language()
        finally:
            printer.muted = False
        printer.reprint()
    elif cmd == "/clear":
        print("-" * 40)
        controller.clear_conversation()
    elif cmd == "/save":
        path = controller.export_history(Path(rest) if rest else None)
        if path is not None:
            print(f"(saved {path})")
    elif cmd == "/speak":
        path = await controller.speak()
        if path is not None:
            print(f"(speech saved to {path})")
    else:
        print(f"Unknown command: {cmd} (try /help)")
    return True


async def run_repl(controller: ChatSessionController, printer: TranscriptPrinter, logger: logging.Logger) -> None:
    print(HELP)
    printer.reprint()
    while True:
        try:
            line = (await asyncio.to_thread(input, "> ")).strip()
        except (EOFError, KeyboardInterrupt):
            break
        if not line:
            continue
        try:
            if line.startswith("/"):
                if not await _handle_command(controller, printer, line):
                    break
            else:
                await controller.send_text(line)
        except PipelineBusyError as e:
            print(f"(busy: {e})")
        except ValueError as e:
            print(f"(invalid input: {e})")
    logger.info("repl_exit")


async def _amain(args) -> int:
    logger, _log_dir, log_path = setup_app_logger(debug=bool(args.debug))
    logger.info("app_start", extra={"api_base_url": str(args.api_base_url), "translator": str(args.translator)})

    printer = TranscriptPrinter()
    services = build_chat_services(args, on_error=_print_error, logger=logger)
    controller = services.controller
    printer.controller = controller
    controller.store.on_change = printer.on_change
    print(f"(logs: {log_path})")

    try:
        await run_repl(controller, printer, logger)
    finally:
        controller.cancel_processing()
        controller.recorder.close()
        await controller.wait_for_audio()
        await services.api.aclose()
        logger.info("app_quit")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = resolve_args(argv)

    if args.list_devices:
        try:
            print(SoundDeviceCaptureDevice.list_devices())
        except CaptureError as e:
            print(str(e), file=sys.stderr)
            return 1
        return 0

    return asyncio.run(_amain(args))


if __name__ == "__main__":
    raise SystemExit(main())
