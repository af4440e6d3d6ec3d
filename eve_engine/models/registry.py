"""Capability tiers for Eve."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Iterable, Mapping


@dataclass(frozen=True)
class TierSpec:
    name: str
    chat_model: str
    image_model: str
    # Zero disables extended reasoning; None leaves the model default.
    thinking_budget: int | None = None


_DEFAULT_TIERS: dict[str, TierSpec] = {
    "free": TierSpec(
        name="free",
        chat_model="gemini-2.5-flash",
        image_model="gemini-2.5-flash-image",
        thinking_budget=0,
    ),
    "pro": TierSpec(
        name="pro",
        chat_model="gemini-3-pro-preview",
        image_model="gemini-3-pro-image-preview",
    ),
}

DEFAULT_TIER = "free"


class TierRegistry:
    def __init__(self, tiers: Mapping[str, TierSpec] | None = None) -> None:
        self._tiers = dict(tiers) if tiers else dict(_DEFAULT_TIERS)

    def get(self, name: str) -> TierSpec | None:
        spec = self._tiers.get(name)
        if spec is None:
            return None
        return _apply_env_overrides(spec)

    def resolve(self, name: str) -> TierSpec:
        spec = self.get(name)
        if spec is None:
            raise ValueError(f"Unknown tier: {name!r} (expected one of {', '.join(self.names())})")
        return spec

    def list(self) -> Iterable[TierSpec]:
        return [self.resolve(name) for name in self.names()]

    def names(self) -> list[str]:
        return sorted(self._tiers.keys())


def _apply_env_overrides(spec: TierSpec) -> TierSpec:
    prefix = f"EVE_{spec.name.upper()}"
    chat_model = str(os.getenv(f"{prefix}_CHAT_MODEL") or "").strip()
    image_model = str(os.getenv(f"{prefix}_IMAGE_MODEL") or "").strip()
    if not chat_model and not image_model:
        return spec
    return replace(
        spec,
        chat_model=chat_model or spec.chat_model,
        image_model=image_model or spec.image_model,
    )
