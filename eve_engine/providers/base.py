"""Backend capability contracts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Protocol, Sequence

from ..chat.schema import ImageReply, Part, Turn

HARM_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
    "HARM_CATEGORY_CIVIC_INTEGRITY",
)
# Artistic anatomy and fashion photography trip the default thresholds.
PERMISSIVE_THRESHOLD = "BLOCK_NONE"


def permissive_safety_settings() -> list[tuple[str, str]]:
    return [(category, PERMISSIVE_THRESHOLD) for category in HARM_CATEGORIES]


@dataclass(frozen=True)
class ChatConfig:
    system_instruction: str
    temperature: float = 1.0
    top_p: float = 0.95
    top_k: int = 40
    thinking_budget: int | None = None
    safety_settings: Sequence[tuple[str, str]] = field(default_factory=permissive_safety_settings)


@dataclass(frozen=True)
class ImageConfig:
    aspect_ratio: str = "9:16"
    safety_settings: Sequence[tuple[str, str]] = field(default_factory=permissive_safety_settings)


class ChatBackend(Protocol):
    name: str

    def create_session(
        self,
        model: str,
        config: ChatConfig,
        history: Sequence[Turn],
        api_key: str,
    ) -> Any:
        ...

    async def send(self, handle: Any, parts: Sequence[Part]) -> str:
        ...

    def stream(self, handle: Any, parts: Sequence[Part]) -> AsyncIterator[str]:
        ...

    async def generate_image(
        self,
        model: str,
        parts: Sequence[Part],
        config: ImageConfig,
        api_key: str,
    ) -> ImageReply:
        ...
