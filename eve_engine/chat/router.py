"""Route a user turn to image editing, image generation or chat."""

from __future__ import annotations

from typing import Callable, Sequence

from ..media import to_inline_part
from ..persona import EVE_APPEARANCE
from ..providers.base import ImageConfig
from .intent import select_route
from .schema import ChatReply, ImageReply, Message, Part, Route, TextPart
from .session import ChatSessionManager
from .triggers import parse_visual_trigger

EDIT_FALLBACK_TEXT = "I've evolved the visual based on your request."
GENERATE_FALLBACK_TEXT = "Here is what I visualized for you."
IMAGE_ASPECT_RATIO = "9:16"

StreamCallback = Callable[[str], None]


async def send_message(
    manager: ChatSessionManager,
    message: str,
    tier: str,
    history: Sequence[Message],
    attachment: str | None = None,
    force_image: bool = False,
    api_key: str | None = None,
    on_stream: StreamCallback | None = None,
) -> ChatReply:
    """Send one user turn.

    ``history`` is only used to rebuild the session when it is missing or
    was created for another tier. Backend errors are recorded and re-raised.
    """
    events = manager.events
    manager.repair(tier, history, api_key)

    route = select_route(message, has_attachment=bool(attachment), force_image=force_image)
    events.emit("route_selected", route=route.value, tier=tier, has_attachment=bool(attachment))
    try:
        if route is Route.EDIT_IMAGE:
            parts: list[Part] = [to_inline_part(str(attachment)), TextPart(message)]
            reply = await _generate_image(manager, tier, parts, api_key)
            return _image_chat_reply(reply, EDIT_FALLBACK_TEXT, route)

        if route is Route.GENERATE_IMAGE:
            reply = await _generate_image(manager, tier, [TextPart(generation_prompt(message))], api_key)
            return _image_chat_reply(reply, GENERATE_FALLBACK_TEXT, route)

        return await _chat(manager, message, tier, history, attachment, api_key, on_stream)
    except Exception as exc:
        events.emit("chat_failed", route=route.value, tier=tier, error=str(exc), error_type=type(exc).__name__)
        raise


def generation_prompt(message: str) -> str:
    if "selfie" in message.lower():
        return f"Create a photorealistic selfie of this fictional character: {EVE_APPEARANCE}. Action: {message}"
    return message


async def _generate_image(
    manager: ChatSessionManager,
    tier: str,
    parts: Sequence[Part],
    api_key: str | None,
) -> ImageReply:
    spec = manager.tiers.resolve(tier)
    key = manager.api_key_for(api_key)
    return await manager.backend.generate_image(
        spec.image_model,
        parts,
        ImageConfig(aspect_ratio=IMAGE_ASPECT_RATIO),
        key,
    )


def _image_chat_reply(reply: ImageReply, fallback_text: str, route: Route) -> ChatReply:
    return ChatReply(text=reply.text or fallback_text, image=reply.image, route=route)


async def _chat(
    manager: ChatSessionManager,
    message: str,
    tier: str,
    history: Sequence[Message],
    attachment: str | None,
    api_key: str | None,
    on_stream: StreamCallback | None,
) -> ChatReply:
    parts: list[Part] = [TextPart(message)]
    if attachment:
        parts = [to_inline_part(attachment), TextPart(message)]

    session = manager.ensure_session(tier, history, api_key)

    if on_stream is not None:
        reply_text = ""
        async for chunk in manager.backend.stream(session.handle, parts):
            if not chunk:
                continue
            reply_text += chunk
            on_stream(reply_text)
    else:
        reply_text = await manager.backend.send(session.handle, parts) or ""

    trigger = parse_visual_trigger(reply_text)
    if trigger.description is not None:
        manager.events.emit("visual_trigger", description=trigger.description)
    return ChatReply(text=trigger.text, route=Route.CHAT, visual_prompt=trigger.description)
