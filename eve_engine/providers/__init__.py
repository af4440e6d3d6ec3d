"""Backend registry."""

from __future__ import annotations

from .base import ChatBackend
from .gemini import GeminiBackend


def default_backend() -> ChatBackend:
    return GeminiBackend()
