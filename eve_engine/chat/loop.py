"""Interactive chat loop wrapper."""

from __future__ import annotations

import asyncio
import sys
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from ..engine import EveEngine
from ..media import decode_data_uri, encode_data_uri, extension_for_mime, mime_type_for_path
from ..memory.store import MessageStore
from .commands import COMMANDS, parse_command
from .schema import MODEL, USER, Message

SELFIE_MARKER = "[SELFIE"


def save_image(image: str, out_dir: Path, prefix: str = "eve") -> Path:
    mime_type, data = decode_data_uri(image)
    out_dir.mkdir(parents=True, exist_ok=True)
    stamp = int(time.time() * 1000)
    path = out_dir / f"{prefix}-{stamp}-{uuid.uuid4().hex[:6]}.{extension_for_mime(mime_type)}"
    path.write_bytes(data)
    return path


def load_attachment(path: Path) -> str:
    return encode_data_uri(path.read_bytes(), mime_type_for_path(path))


@dataclass
class ChatState:
    attachment: str | None = None
    force_image: bool = False


class ChatLoop:
    def __init__(
        self,
        engine: EveEngine,
        store: MessageStore,
        conversation_id: str,
        out_dir: Path,
        input_fn: Callable[[str], str] = input,
    ) -> None:
        self.engine = engine
        self.store = store
        self.conversation_id = conversation_id
        self.out_dir = out_dir
        self.state = ChatState()
        self._input = input_fn
        self._pending: set[asyncio.Task[Any]] = set()

    def history(self) -> list[Message]:
        return self.store.list_messages(self.conversation_id)

    async def run(self) -> None:
        self.store.init_db()
        history = self.history()
        if history:
            self.engine.restore(history)
            print(f"Restored {len(history)} messages on the {self.engine.tier} tier.")
        print("Eve chat started. Type /help for commands.")
        while True:
            try:
                line = await asyncio.to_thread(self._input, "> ")
            except (EOFError, KeyboardInterrupt):
                break
            command = parse_command(line)
            if command.action == "noop":
                continue
            if command.action == "quit":
                break
            if command.action == "help":
                print("Commands: " + " ".join(COMMANDS))
                continue
            if command.action == "set_tier":
                try:
                    tier = self.engine.set_tier(command.args.get("tier") or "")
                except ValueError as exc:
                    print(str(exc))
                    continue
                print(f"Tier set to {tier}")
                continue
            if command.action == "attach":
                self._attach(str(command.args.get("path") or ""))
                continue
            if command.action == "force_image":
                self.state.force_image = True
                print("Image mode on for the next message.")
                continue
            if command.action == "reset":
                self.engine.reset()
                print("Session reset.")
                continue
            if command.action == "clear":
                removed = self.store.clear(self.conversation_id)
                self.engine.reset()
                print(f"Cleared {removed} messages.")
                continue
            if command.action == "selfie":
                scene = str(command.args.get("scene") or "").strip()
                if not scene:
                    print("/selfie requires a scene description")
                    continue
                message = Message(id=_new_id(), role=MODEL, text="", is_image_loading=True)
                self.store.append(self.conversation_id, message)
                self._schedule_selfie(message, scene)
                print("Selfie requested.")
                continue
            if command.action == "unknown":
                print(f"Unknown command: /{command.args.get('command')}")
                continue
            await self.send(command.text or "")
        await self.drain()

    async def send(self, text: str) -> Message:
        history = self.history()
        attachment = self.state.attachment
        force_image = self.state.force_image
        self.state = ChatState()

        user_message = Message(id=_new_id(), role=USER, text=text, image=attachment)
        self.store.append(self.conversation_id, user_message)

        shown = ""

        def on_stream(cumulative: str) -> None:
            nonlocal shown
            visible = visible_stream_text(cumulative)
            if len(visible) > len(shown):
                sys.stdout.write(visible[len(shown):])
                sys.stdout.flush()
                shown = visible

        try:
            reply = await self.engine.send_message(
                text,
                history,
                attachment=attachment,
                force_image=force_image,
                on_stream=on_stream,
            )
        except Exception as exc:
            if shown:
                print()
            error = Message(id=_new_id(), role=MODEL, text=f"Something went wrong: {exc}", is_error=True)
            self.store.append(self.conversation_id, error)
            print(error.text)
            return error

        if shown:
            _finish_streamed_line(shown, reply.text)
        else:
            print(reply.text)
        message = Message(
            id=_new_id(),
            role=MODEL,
            text=reply.text,
            image=reply.image,
            is_image_loading=reply.visual_prompt is not None,
        )
        self.store.append(self.conversation_id, message)
        if reply.image:
            print(f"Image saved: {save_image(reply.image, self.out_dir)}")
        if reply.visual_prompt is not None:
            self._schedule_selfie(message, reply.visual_prompt)
        return message

    async def drain(self) -> None:
        if not self._pending:
            return
        print(f"Waiting for {len(self._pending)} selfie(s)...")
        await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _attach(self, raw_path: str) -> None:
        if not raw_path:
            print("/attach requires a path")
            return
        path = Path(raw_path).expanduser()
        if not path.exists():
            print(f"Attach failed: file not found ({path})")
            return
        self.state.attachment = load_attachment(path)
        print(f"Attached {path}")

    def _schedule_selfie(self, message: Message, scene: str) -> None:
        task = self.engine.schedule_selfie(scene)
        self._pending.add(task)

        def _done(done: asyncio.Task[Any]) -> None:
            self._pending.discard(done)
            image = None if done.cancelled() else done.result()
            message.is_image_loading = False
            message.image = image
            self.store.update(self.conversation_id, message)
            if image:
                print(f"\nSelfie saved: {save_image(image, self.out_dir, prefix='selfie')}")

        task.add_done_callback(_done)


def visible_stream_text(cumulative: str) -> str:
    """Streamed text up to the first selfie marker, or a partial one at the tail."""
    cut = cumulative.find(SELFIE_MARKER)
    if cut >= 0:
        return cumulative[:cut]
    for start in range(max(0, len(cumulative) - len(SELFIE_MARKER) + 1), len(cumulative)):
        if SELFIE_MARKER.startswith(cumulative[start:]):
            return cumulative[:start]
    return cumulative


def _finish_streamed_line(shown: str, final: str) -> None:
    # `final` is the marker-free reply; `shown` is what already reached the terminal.
    if final.startswith(shown):
        sys.stdout.write(final[len(shown):])
    elif not final.startswith(shown.rstrip()):
        sys.stdout.write("\n" + final)
    print()


def _new_id() -> str:
    return uuid.uuid4().hex
