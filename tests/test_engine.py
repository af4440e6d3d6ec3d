from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from eve_engine.chat.schema import ImageReply, InlineDataPart, Message, Route
from eve_engine.engine import EveEngine
from eve_engine.media import encode_data_uri

PHOTO = encode_data_uri(b"user-photo", "image/jpeg")
RESULT = encode_data_uri(b"result-image", "image/png")


class _FakeBackend:
    name = "fake"

    def __init__(self, reply: str = "hello") -> None:
        self.reply = reply
        self.created: list[str] = []
        self.image_calls: list[list[object]] = []

    def create_session(self, model, config, history, api_key):
        self.created.append(model)
        return "handle"

    async def send(self, handle, parts):
        return self.reply

    async def stream(self, handle, parts):
        yield self.reply

    async def generate_image(self, model, parts, config, api_key):
        self.image_calls.append(list(parts))
        return ImageReply(text="", image=RESULT)


@pytest.fixture(autouse=True)
def _api_key(monkeypatch) -> None:
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    monkeypatch.setenv("EVE_REFERENCE_IMAGES", "")


def test_engine_writes_events_file(tmp_path: Path) -> None:
    events_path = tmp_path / "events.jsonl"
    engine = EveEngine(events_path=events_path, backend=_FakeBackend(), session_id="conv-1")
    reply = asyncio.run(engine.send_message("hi there", []))

    assert reply.route is Route.CHAT
    assert reply.text == "hello"
    events = [json.loads(line) for line in events_path.read_text(encoding="utf-8").splitlines()]
    types = [event["type"] for event in events]
    assert types[0] == "engine_started"
    assert "session_initialized" in types
    assert "route_selected" in types
    assert {event["session_id"] for event in events} == {"conv-1"}


def test_engine_rejects_unknown_tier() -> None:
    with pytest.raises(ValueError):
        EveEngine(tier="platinum", backend=_FakeBackend())


def test_set_tier_rebuilds_session_on_next_send() -> None:
    backend = _FakeBackend()
    engine = EveEngine(backend=backend)
    asyncio.run(engine.send_message("hi", []))
    engine.set_tier("pro")
    asyncio.run(engine.send_message("hi again", [Message(id="1", role="user", text="hi")]))
    assert backend.created == ["gemini-2.5-flash", "gemini-3-pro-preview"]


def test_deprecated_edit_image_forces_image_mode() -> None:
    backend = _FakeBackend()
    engine = EveEngine(backend=backend)
    image = asyncio.run(engine.edit_image(PHOTO, "sunset vibes"))

    assert image == RESULT
    assert isinstance(backend.image_calls[0][0], InlineDataPart)


def test_schedule_selfie_runs_as_independent_task() -> None:
    backend = _FakeBackend()
    engine = EveEngine(backend=backend)

    async def scenario() -> tuple[str | None, object]:
        task = engine.schedule_selfie("on a balcony")
        reply = await engine.send_message("how's the view?", [])
        return await task, reply

    image, reply = asyncio.run(scenario())
    assert image == RESULT
    assert reply.text == "hello"
    assert engine.sessions.session is not None
