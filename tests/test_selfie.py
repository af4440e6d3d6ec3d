from __future__ import annotations

import asyncio
import random

import pytest

from eve_engine.chat.schema import ImageReply, InlineDataPart, TextPart
from eve_engine.chat.selfie import build_selfie_parts, generate_visual_selfie, selfie_prompt
from eve_engine.events import EventWriter
from eve_engine.media import ReferenceImageError, encode_data_uri
from eve_engine.persona import EVE_APPEARANCE

SELFIE = encode_data_uri(b"selfie-bytes", "image/png")
REFERENCE = InlineDataPart(mime_type="image/webp", data=b"reference-bytes")


class _ImageBackend:
    name = "fake"

    def __init__(self, reply: ImageReply | Exception | None = None) -> None:
        self.reply = reply if reply is not None else ImageReply(text="", image=SELFIE)
        self.calls: list[dict[str, object]] = []

    async def generate_image(self, model, parts, config, api_key):
        self.calls.append({"model": model, "parts": list(parts), "config": config, "api_key": api_key})
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply


@pytest.fixture(autouse=True)
def _api_key(monkeypatch) -> None:
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")


def _events() -> EventWriter:
    return EventWriter(None, "conv-test", echo=False)


def _run(description: str, backend: _ImageBackend, events: EventWriter, **kwargs) -> str | None:
    return asyncio.run(
        generate_visual_selfie(description, "free", backend=backend, events=events, **kwargs)
    )


def test_selfie_prompt_embeds_scene_and_appearance() -> None:
    prompt = selfie_prompt("reading in a hammock")
    assert "Scene/Action: reading in a hammock." in prompt
    assert EVE_APPEARANCE in prompt
    assert "9:16 aspect ratio" in prompt


def test_build_selfie_parts_puts_reference_first() -> None:
    assert build_selfie_parts("x") == [TextPart(selfie_prompt("x"))]
    parts = build_selfie_parts("x", REFERENCE)
    assert parts == [REFERENCE, TextPart(selfie_prompt("x"))]


def test_empty_reference_pool_sends_only_the_prompt() -> None:
    backend = _ImageBackend()
    image = _run("at the beach", backend, _events(), references=[])

    assert image == SELFIE
    call = backend.calls[0]
    assert call["model"] == "gemini-2.5-flash-image"
    assert call["config"].aspect_ratio == "9:16"
    assert len(call["parts"]) == 1
    assert isinstance(call["parts"][0], TextPart)


def test_single_reference_is_optimized_fetched_and_prepended() -> None:
    backend = _ImageBackend()
    events = _events()
    fetched: list[str] = []
    pool = [
        "https://res.cloudinary.com/demo/image/upload/v1/eve/a.png",
        "https://res.cloudinary.com/demo/image/upload/v1/eve/b.png",
        "https://res.cloudinary.com/demo/image/upload/v1/eve/c.png",
    ]

    def fetcher(url: str) -> InlineDataPart:
        fetched.append(url)
        return REFERENCE

    image = _run("at the beach", backend, events, references=pool, fetcher=fetcher, rng=random.Random(7))

    assert image == SELFIE
    assert len(fetched) == 1
    assert "/upload/w_1024,q_auto,f_auto/v1/eve/" in fetched[0]
    parts = backend.calls[0]["parts"]
    assert len(parts) == 2
    assert parts[0] == REFERENCE
    assert isinstance(parts[1], TextPart)
    assert "selfie_reference_attached" in events.types()


def test_reference_failure_continues_without_reference() -> None:
    backend = _ImageBackend()
    events = _events()

    def fetcher(url: str) -> InlineDataPart:
        raise ReferenceImageError("404")

    image = _run("at the beach", backend, events, references=["https://example.test/eve.png"], fetcher=fetcher)

    assert image == SELFIE
    assert len(backend.calls[0]["parts"]) == 1
    assert "selfie_reference_failed" in events.types()


def test_backend_failure_is_swallowed() -> None:
    events = _events()
    image = _run("at the beach", _ImageBackend(RuntimeError("safety block")), events, references=[])
    assert image is None
    failed = [event for event in events.recent if event["type"] == "selfie_failed"]
    assert failed[0]["error"] == "safety block"


def test_filtered_response_returns_no_image() -> None:
    events = _events()
    image = _run("at the beach", _ImageBackend(ImageReply(text="I can't", image=None)), events, references=[])
    assert image is None
    assert "selfie_empty" in events.types()


def test_reference_pool_comes_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("EVE_REFERENCE_IMAGES", "https://example.test/one.png")
    backend = _ImageBackend()
    fetched: list[str] = []

    def fetcher(url: str) -> InlineDataPart:
        fetched.append(url)
        return REFERENCE

    _run("waving", backend, _events(), fetcher=fetcher)
    assert fetched == ["https://example.test/one.png"]
    assert len(backend.calls[0]["parts"]) == 2


def test_selfie_failure_with_unwritable_events_file_returns_none(tmp_path) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")
    events = EventWriter(blocker / "events.jsonl", "conv-test", echo=False)

    image = _run("beach", _ImageBackend(RuntimeError("quota")), events, references=[])

    assert image is None
    assert "selfie_failed" in events.types()
