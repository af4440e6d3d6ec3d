"""Reconcile the client message log into a backend-legal turn sequence.

The backend accepts a history that starts with a user turn and strictly
alternates user/model. It also has no notion of images authored by the model,
so an image attached to a model message is replayed as a synthetic user turn
directly after it. The passes below run in order:

1. drop error messages and build one turn per message (plus synthetic turns),
2. merge adjacent turns that share a role,
3. drop model turns from the front,
4. close a trailing user turn with a placeholder model turn.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from ..events import EventWriter
from ..media import to_inline_part
from .schema import MODEL, USER, InlineDataPart, Message, Part, TextPart, Turn

PLACEHOLDER_TEXT = "..."
MODEL_IMAGE_ANNOTATION = "[System: This is the visual content generated in the previous turn]"


def build_legal_history(messages: Iterable[Message], events: EventWriter | None = None) -> list[Turn]:
    turns = _expand_messages(messages, events)
    merged = merge_adjacent_turns(turns)
    while merged and merged[0].role != USER:
        merged.pop(0)
    if merged and merged[-1].role == USER:
        merged.append(Turn(role=MODEL, parts=[TextPart(PLACEHOLDER_TEXT)]))
    return merged


def _expand_messages(messages: Iterable[Message], events: EventWriter | None) -> list[Turn]:
    turns: list[Turn] = []
    for message in messages:
        if message.is_error:
            continue
        if message.role == USER:
            parts: list[Part] = []
            image_part = _decode_image(message, events)
            if image_part is not None:
                parts.append(image_part)
            if message.text and message.text.strip():
                parts.append(TextPart(message.text))
            if parts:
                turns.append(Turn(role=USER, parts=parts))
        elif message.role == MODEL:
            turns.append(Turn(role=MODEL, parts=[TextPart(message.text or PLACEHOLDER_TEXT)]))
            image_part = _decode_image(message, events)
            if image_part is not None:
                turns.append(Turn(role=USER, parts=[image_part, TextPart(MODEL_IMAGE_ANNOTATION)]))
    return turns


def _decode_image(message: Message, events: EventWriter | None) -> InlineDataPart | None:
    if not message.image:
        return None
    try:
        return to_inline_part(message.image)
    except ValueError as exc:
        if events is not None:
            events.emit(
                "history_image_skipped",
                message_id=message.id,
                role=message.role,
                error=str(exc),
            )
        return None


def merge_adjacent_turns(turns: Sequence[Turn]) -> list[Turn]:
    merged: list[Turn] = []
    for turn in turns:
        if merged and merged[-1].role == turn.role:
            merged[-1].parts.extend(turn.parts)
            continue
        merged.append(Turn(role=turn.role, parts=list(turn.parts)))
    return merged


def is_legal_history(turns: Sequence[Turn]) -> bool:
    if not turns:
        return True
    if turns[0].role != USER:
        return False
    return all(prev.role != cur.role for prev, cur in zip(turns, turns[1:]))
