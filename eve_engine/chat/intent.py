"""Keyword heuristics that pick a route for each user turn."""

from __future__ import annotations

from typing import Iterable

from .schema import Route

_GENERATION_KEYWORDS = (
    "generate",
    "create",
    "draw",
    "imagine",
    "render",
    "visualize",
    "make an image",
    "image of",
    "picture of",
)

_EDIT_KEYWORDS = (
    "edit",
    "change",
    "filter",
    "style",
    "make it",
    "turn it",
    "add",
    "remove",
    "background",
    "modify",
    "bananafy",
)


def _contains_any(text: str, keywords: Iterable[str]) -> bool:
    lowered = str(text or "").lower()
    return any(keyword in lowered for keyword in keywords)


def is_generation_intent(text: str) -> bool:
    return _contains_any(text, _GENERATION_KEYWORDS)


def is_edit_intent(text: str) -> bool:
    return _contains_any(text, _EDIT_KEYWORDS)


def select_route(message: str, *, has_attachment: bool, force_image: bool = False) -> Route:
    """Attachment presence is checked first, then edit before generation."""
    if has_attachment and (force_image or is_edit_intent(message)):
        return Route.EDIT_IMAGE
    if not has_attachment and (force_image or is_generation_intent(message)):
        return Route.GENERATE_IMAGE
    return Route.CHAT
