"""Best-effort selfie generation for visual triggers.

Runs apart from the chat session so a slow or failing image request never
touches the conversation. Every failure is recorded and reported as "no image".
"""

from __future__ import annotations

import asyncio
import random
from typing import Callable, Sequence

from ..events import EventWriter
from ..media import fetch_image, optimize_reference_url
from ..models.registry import TierRegistry
from ..persona import EVE_APPEARANCE, reference_images
from ..providers.base import ChatBackend, ImageConfig
from ..utils import resolve_api_key
from .schema import InlineDataPart, Part, TextPart

SELFIE_ASPECT_RATIO = "9:16"

ImageFetcher = Callable[[str], InlineDataPart]


def selfie_prompt(description: str) -> str:
    # Framing as a fictional character study keeps safety filters from misfiring.
    return (
        "Generate a high-quality photorealistic portrait of this fictional character.\n\n"
        "CRITICAL: Preserve facial features, skin tone, hair style from the reference image.\n\n"
        f"Scene/Action: {description}.\n"
        f"Character Details: {EVE_APPEARANCE}\n\n"
        "Style: 8k resolution, cinematic lighting, raw photo, highly detailed, 9:16 aspect ratio, "
        "artistic fashion photography."
    )


def build_selfie_parts(description: str, reference: InlineDataPart | None = None) -> list[Part]:
    parts: list[Part] = [TextPart(selfie_prompt(description))]
    if reference is not None:
        parts.insert(0, reference)
    return parts


async def generate_visual_selfie(
    description: str,
    tier: str,
    api_key: str | None = None,
    *,
    backend: ChatBackend,
    events: EventWriter,
    tiers: TierRegistry | None = None,
    references: Sequence[str] | None = None,
    fetcher: ImageFetcher = fetch_image,
    rng: random.Random | None = None,
) -> str | None:
    """Return a data-URI selfie for ``description`` or None. Never raises."""
    try:
        spec = (tiers or TierRegistry()).resolve(tier)
        key = resolve_api_key(api_key)
        if not key:
            events.emit("credential_missing", message="No API key provided. Selfie may fail.")
        events.emit("selfie_started", tier=tier, description=description)

        pool = list(reference_images() if references is None else references)
        reference = await _load_reference(pool, fetcher, events, rng or random.Random())
        parts = build_selfie_parts(description, reference)

        reply = await backend.generate_image(
            spec.image_model,
            parts,
            ImageConfig(aspect_ratio=SELFIE_ASPECT_RATIO),
            key,
        )
    except Exception as exc:
        events.emit("selfie_failed", tier=tier, error=str(exc), error_type=type(exc).__name__)
        return None

    if not reply.image:
        events.emit("selfie_empty", tier=tier, text=reply.text)
        return None
    events.emit("selfie_generated", tier=tier, model=spec.image_model, with_reference=reference is not None)
    return reply.image


async def _load_reference(
    pool: Sequence[str],
    fetcher: ImageFetcher,
    events: EventWriter,
    rng: random.Random,
) -> InlineDataPart | None:
    if not pool:
        return None
    # One reference only; several push the request past the payload limit.
    url = optimize_reference_url(rng.choice(list(pool)))
    try:
        reference = await asyncio.to_thread(fetcher, url)
    except Exception as exc:
        events.emit("selfie_reference_failed", url=url, error=str(exc))
        return None
    events.emit("selfie_reference_attached", url=url, mime_type=reference.mime_type)
    return reference
