"""Owns the live chat session for one conversation.

Not safe for concurrent writers: callers serialize ``initialize_raw`` /
``restore`` / ``reset`` relative to in-flight sends.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from ..events import EventWriter
from ..models.registry import TierRegistry, TierSpec
from ..persona import EVE_SYSTEM_INSTRUCTION
from ..providers.base import ChatBackend, ChatConfig
from ..utils import resolve_api_key
from .history import build_legal_history
from .schema import Message, Turn


class SessionUnavailableError(RuntimeError):
    """No chat session could be constructed."""


@dataclass
class LiveSession:
    handle: Any
    tier: str


def chat_config_for(tier: TierSpec) -> ChatConfig:
    return ChatConfig(
        system_instruction=EVE_SYSTEM_INSTRUCTION,
        temperature=1.0,
        top_p=0.95,
        top_k=40,
        thinking_budget=tier.thinking_budget,
    )


class ChatSessionManager:
    def __init__(
        self,
        backend: ChatBackend,
        events: EventWriter,
        tiers: TierRegistry | None = None,
    ) -> None:
        self.backend = backend
        self.events = events
        self.tiers = tiers or TierRegistry()
        self.session: LiveSession | None = None

    @property
    def current_tier(self) -> str | None:
        return self.session.tier if self.session else None

    def repair(self, tier: str, history: Sequence[Message], api_key: str | None = None) -> LiveSession | None:
        """Rebuild the session when it is missing or bound to another tier."""
        if self.session is None or self.session.tier != tier:
            self.events.emit(
                "session_restore_started",
                tier=tier,
                previous_tier=self.current_tier,
                messages=len(history),
            )
            self.restore(tier, history, api_key)
        return self.session

    def ensure_session(self, tier: str, history: Sequence[Message], api_key: str | None = None) -> LiveSession:
        session = self.repair(tier, history, api_key)
        if session is None:
            raise SessionUnavailableError(f"Could not start a chat session on the {tier} tier.")
        return session

    def restore(self, tier: str, history: Sequence[Message], api_key: str | None = None) -> None:
        if not history:
            self.initialize_raw(tier, [], api_key)
            return
        try:
            turns = build_legal_history(history, self.events)
        except Exception as exc:
            self.events.emit("history_reconcile_failed", tier=tier, error=str(exc))
            self.initialize_raw(tier, [], api_key)
            return
        self.initialize_raw(tier, turns, api_key)

    def initialize_raw(self, tier: str, turns: Sequence[Turn], api_key: str | None = None) -> None:
        """Build a fresh session; on failure retry once with no history. Never raises."""
        key = self.api_key_for(api_key)
        try:
            spec = self.tiers.resolve(tier)
            config = chat_config_for(spec)
            handle = self.backend.create_session(spec.chat_model, config, list(turns), key)
        except Exception as exc:
            self.events.emit("session_fallback", tier=tier, turns=len(turns), error=str(exc))
            self._initialize_empty(tier, key)
            return
        self.session = LiveSession(handle=handle, tier=tier)
        self.events.emit("session_initialized", tier=tier, model=spec.chat_model, turns=len(turns))

    def reset(self) -> None:
        self.session = None

    def _initialize_empty(self, tier: str, key: str) -> None:
        try:
            spec = self.tiers.resolve(tier)
            handle = self.backend.create_session(spec.chat_model, chat_config_for(spec), [], key)
        except Exception as exc:
            self.session = None
            self.events.emit("session_init_failed", tier=tier, error=str(exc))
            return
        self.session = LiveSession(handle=handle, tier=tier)
        self.events.emit("session_initialized", tier=tier, model=spec.chat_model, turns=0, fallback=True)

    def api_key_for(self, explicit: str | None) -> str:
        key = resolve_api_key(explicit)
        if not key:
            self.events.emit("credential_missing", message="No API key provided. Chat may fail.")
        return key
