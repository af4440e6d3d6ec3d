"""Visual trigger protocol: ``[SELFIE]`` markers embedded in model replies."""

from __future__ import annotations

import re

from .schema import VisualTrigger

DEFAULT_SELFIE_DESCRIPTION = "looking at the camera"

_SELFIE_RE = re.compile(r"\[SELFIE(?::\s*(.*?))?\]")


def parse_visual_trigger(text: str) -> VisualTrigger:
    """Extract the first marker's scene and strip every marker from the text.

    Text without a marker comes back untouched.
    """
    raw = str(text or "")
    match = _SELFIE_RE.search(raw)
    if match is None:
        return VisualTrigger(text=raw)
    description = match.group(1) or DEFAULT_SELFIE_DESCRIPTION
    visible = _SELFIE_RE.sub("", raw).strip()
    return VisualTrigger(text=visible, description=description)
