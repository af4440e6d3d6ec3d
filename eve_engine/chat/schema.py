"""Conversation data model."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Union

USER = "user"
MODEL = "model"


@dataclass
class Message:
    """One entry of the client-side conversation log."""

    id: str
    role: str
    text: str = ""
    image: str | None = None
    is_error: bool = False
    is_image_loading: bool = False

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"id": self.id, "role": self.role, "text": self.text}
        if self.image:
            payload["image"] = self.image
        if self.is_error:
            payload["isError"] = True
        if self.is_image_loading:
            payload["isImageLoading"] = True
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Message":
        return cls(
            id=str(payload.get("id") or ""),
            role=str(payload.get("role") or USER),
            text=str(payload.get("text") or ""),
            image=payload.get("image") or None,
            is_error=bool(payload.get("isError", payload.get("is_error", False))),
            is_image_loading=bool(payload.get("isImageLoading", payload.get("is_image_loading", False))),
        )


@dataclass(frozen=True)
class TextPart:
    text: str


@dataclass(frozen=True)
class InlineDataPart:
    mime_type: str
    data: bytes = field(repr=False)


Part = Union[TextPart, InlineDataPart]


@dataclass
class Turn:
    role: str
    parts: list[Part] = field(default_factory=list)


class Route(str, Enum):
    EDIT_IMAGE = "edit_image"
    GENERATE_IMAGE = "generate_image"
    CHAT = "chat"


@dataclass(frozen=True)
class VisualTrigger:
    text: str
    description: str | None = None


@dataclass
class ImageReply:
    text: str
    image: str | None = None


@dataclass
class ChatReply:
    text: str
    route: Route
    image: str | None = None
    visual_prompt: str | None = None
