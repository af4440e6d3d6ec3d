"""Gemini backend built on the async google-genai client."""

from __future__ import annotations

from typing import Any, AsyncIterator, Sequence

try:
    from google import genai  # type: ignore
    from google.genai import types  # type: ignore
except Exception:  # pragma: no cover
    genai = None  # type: ignore
    types = None  # type: ignore

from ..chat.schema import ImageReply, InlineDataPart, Part, TextPart, Turn
from ..media import FETCHED_FALLBACK_MIME_TYPE, encode_data_uri
from .base import ChatConfig, ImageConfig


class GeminiBackend:
    name = "gemini"

    def __init__(self) -> None:
        self._clients: dict[str, Any] = {}

    def create_session(
        self,
        model: str,
        config: ChatConfig,
        history: Sequence[Turn],
        api_key: str,
    ) -> Any:
        client = self._client(api_key)
        return client.aio.chats.create(
            model=model,
            config=build_chat_config(config),
            history=to_contents(history),
        )

    async def send(self, handle: Any, parts: Sequence[Part]) -> str:
        response = await handle.send_message(to_message(parts))
        return _response_text(response)

    async def stream(self, handle: Any, parts: Sequence[Part]) -> AsyncIterator[str]:
        chunks = await handle.send_message_stream(to_message(parts))
        async for chunk in chunks:
            text = _response_text(chunk)
            if text:
                yield text

    async def generate_image(
        self,
        model: str,
        parts: Sequence[Part],
        config: ImageConfig,
        api_key: str,
    ) -> ImageReply:
        client = self._client(api_key)
        response = await client.aio.models.generate_content(
            model=model,
            contents=[to_part(part) for part in parts],
            config=build_image_config(config),
        )
        return extract_image_reply(response)

    def _client(self, api_key: str) -> Any:
        if genai is None:
            raise RuntimeError("google-genai package not installed. Run: pip install google-genai")
        client = self._clients.get(api_key)
        if client is None:
            # An empty key lets the SDK fall back to GOOGLE_API_KEY / GEMINI_API_KEY.
            client = genai.Client(api_key=api_key or None)
            self._clients[api_key] = client
        return client


def build_chat_config(config: ChatConfig) -> Any:
    kwargs: dict[str, Any] = {
        "system_instruction": config.system_instruction,
        "temperature": config.temperature,
        "top_p": config.top_p,
        "top_k": config.top_k,
        "safety_settings": _safety_settings(config.safety_settings),
    }
    if config.thinking_budget is not None:
        kwargs["thinking_config"] = types.ThinkingConfig(thinking_budget=config.thinking_budget)
    return types.GenerateContentConfig(**kwargs)


def build_image_config(config: ImageConfig) -> Any:
    return types.GenerateContentConfig(
        image_config=types.ImageConfig(aspect_ratio=config.aspect_ratio),
        safety_settings=_safety_settings(config.safety_settings),
    )


def _safety_settings(settings: Sequence[tuple[str, str]]) -> list[Any]:
    return [
        types.SafetySetting(
            category=getattr(types.HarmCategory, category),
            threshold=getattr(types.HarmBlockThreshold, threshold),
        )
        for category, threshold in settings
    ]


def to_part(part: Part) -> Any:
    if isinstance(part, InlineDataPart):
        return types.Part(inline_data=types.Blob(data=part.data, mime_type=part.mime_type))
    return types.Part(text=part.text)


def to_message(parts: Sequence[Part]) -> Any:
    if len(parts) == 1 and isinstance(parts[0], TextPart):
        return parts[0].text
    return [to_part(part) for part in parts]


def to_contents(turns: Sequence[Turn]) -> list[Any]:
    return [types.Content(role=turn.role, parts=[to_part(part) for part in turn.parts]) for turn in turns]


def extract_image_reply(response: Any) -> ImageReply:
    """Collect the (last) inline image and all text from the first candidate."""
    image: str | None = None
    texts: list[str] = []
    candidates = getattr(response, "candidates", None) or []
    if candidates:
        content = getattr(candidates[0], "content", None)
        for part in getattr(content, "parts", None) or []:
            inline_data = getattr(part, "inline_data", None)
            data = getattr(inline_data, "data", None) if inline_data else None
            if data:
                mime_type = getattr(inline_data, "mime_type", None) or FETCHED_FALLBACK_MIME_TYPE
                if isinstance(data, str):
                    image = f"data:{mime_type};base64,{data}"
                else:
                    image = encode_data_uri(bytes(data), mime_type)
                continue
            text = getattr(part, "text", None)
            if isinstance(text, str) and text:
                texts.append(text)
    return ImageReply(text="".join(texts), image=image)


def _response_text(response: Any) -> str:
    text = getattr(response, "text", None)
    return text if isinstance(text, str) else ""
