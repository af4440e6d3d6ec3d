from __future__ import annotations

import json
from pathlib import Path

from eve_engine.events import EventWriter, null_writer
from eve_engine.media import encode_data_uri


def test_event_writer(tmp_path: Path) -> None:
    path = tmp_path / "events.jsonl"
    writer = EventWriter(path, "conv-123", echo=False)
    writer.emit("session_initialized", tier="free")
    lines = path.read_text(encoding="utf-8").strip().splitlines()
    assert len(lines) == 1
    payload = json.loads(lines[0])
    assert payload["type"] == "session_initialized"
    assert payload["session_id"] == "conv-123"
    assert "ts" in payload
    assert payload["tier"] == "free"


def test_event_writer_omits_image_payloads(tmp_path: Path) -> None:
    path = tmp_path / "events.jsonl"
    writer = EventWriter(path, "conv-123", echo=False)
    event = writer.emit("selfie_generated", image=encode_data_uri(b"x" * 64), note=encode_data_uri(b"y"))
    assert event["image"] == "<omitted>"
    assert event["note"].startswith("<data-uri:")


def test_null_writer_keeps_recent_events_in_memory() -> None:
    writer = null_writer()
    writer.emit("route_selected", route="chat")
    writer.emit("visual_trigger", description="waving")
    assert writer.types() == ["route_selected", "visual_trigger"]


def test_event_writer_survives_unwritable_path(tmp_path: Path, capsys) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("not a directory", encoding="utf-8")
    writer = EventWriter(blocker / "events.jsonl", "conv-123", echo=False)

    writer.emit("selfie_failed", error="boom")
    writer.emit("selfie_empty")

    assert writer.types() == ["selfie_failed", "selfie_empty"]
    assert writer.write_error
    assert capsys.readouterr().err.count("events file unwritable") == 1
