"""Core Eve engine orchestration."""

from __future__ import annotations

import asyncio
import uuid
from pathlib import Path
from typing import Any, Sequence

from .chat.router import StreamCallback, send_message
from .chat.schema import ChatReply, Message
from .chat.selfie import generate_visual_selfie
from .chat.session import ChatSessionManager
from .events import EventWriter
from .models.registry import DEFAULT_TIER, TierRegistry
from .providers import default_backend
from .providers.base import ChatBackend


class EveEngine:
    """One conversation: its session, its backend and its event stream."""

    def __init__(
        self,
        events_path: Path | None = None,
        tier: str = DEFAULT_TIER,
        api_key: str | None = None,
        backend: ChatBackend | None = None,
        tiers: TierRegistry | None = None,
        session_id: str | None = None,
    ) -> None:
        self.session_id = session_id or str(uuid.uuid4())
        self.events = EventWriter(events_path, self.session_id)
        self.tiers = tiers or TierRegistry()
        self.tier = self.tiers.resolve(tier).name
        self.api_key = api_key
        self.backend = backend or default_backend()
        self.sessions = ChatSessionManager(self.backend, self.events, self.tiers)
        self._selfie_tasks: set[asyncio.Task[Any]] = set()
        self.events.emit("engine_started", tier=self.tier, backend=getattr(self.backend, "name", None))

    def set_tier(self, tier: str) -> str:
        # The session is rebuilt lazily on the next send.
        self.tier = self.tiers.resolve(tier).name
        return self.tier

    def restore(self, history: Sequence[Message], tier: str | None = None) -> None:
        self.sessions.restore(tier or self.tier, history, self.api_key)

    def reset(self) -> None:
        self.sessions.reset()
        self.events.emit("session_reset", tier=self.tier)

    async def send_message(
        self,
        message: str,
        history: Sequence[Message],
        attachment: str | None = None,
        force_image: bool = False,
        on_stream: StreamCallback | None = None,
        tier: str | None = None,
    ) -> ChatReply:
        return await send_message(
            self.sessions,
            message,
            tier or self.tier,
            history,
            attachment=attachment,
            force_image=force_image,
            api_key=self.api_key,
            on_stream=on_stream,
        )

    async def generate_visual_selfie(self, description: str, tier: str | None = None) -> str | None:
        return await generate_visual_selfie(
            description,
            tier or self.tier,
            self.api_key,
            backend=self.backend,
            events=self.events,
            tiers=self.tiers,
        )

    def schedule_selfie(self, description: str, tier: str | None = None) -> asyncio.Task[str | None]:
        """Start a selfie in the background; the caller may await or ignore it."""
        task = asyncio.create_task(self.generate_visual_selfie(description, tier))
        self._selfie_tasks.add(task)
        task.add_done_callback(self._selfie_tasks.discard)
        return task

    async def edit_image(self, image: str, prompt: str, tier: str | None = None) -> str | None:
        """Deprecated single-shot edit kept for older callers; use send_message."""
        reply = await send_message(
            self.sessions,
            prompt,
            tier or self.tier,
            [],
            attachment=image,
            force_image=True,
            api_key=self.api_key,
        )
        return reply.image
