"""Slash commands for the interactive chat loop."""

from __future__ import annotations

import re
import shlex
from dataclasses import dataclass, field
from typing import Any

COMMANDS = {
    "/tier": "Switch capability tier (free or pro)",
    "/attach": "Attach an image file to the next message",
    "/imagine": "Force image mode for the next message",
    "/selfie": "Ask Eve for a selfie of a scene",
    "/reset": "Drop the live session (rebuilt from history on next send)",
    "/clear": "Forget the stored conversation",
    "/help": "Show help",
    "/quit": "Leave the chat",
}

_SLASH_PATTERN = re.compile(r"^/(\w+)(?:\s+(.*))?$", re.DOTALL)

_NO_ARG_ACTIONS = {
    "imagine": "force_image",
    "reset": "reset",
    "clear": "clear",
    "help": "help",
    "quit": "quit",
    "exit": "quit",
}


@dataclass
class Command:
    action: str
    raw: str
    text: str | None = None
    args: dict[str, Any] = field(default_factory=dict)


def _parse_single_path_arg(arg: str) -> str:
    """Accept quoted paths; unquoted paths with spaces are joined back together."""
    if not arg:
        return ""
    try:
        parts = shlex.split(arg)
    except ValueError:
        parts = arg.split()
    parts = [part for part in parts if part]
    if not parts:
        return ""
    return " ".join(parts)


def parse_command(text: str) -> Command:
    raw = text.strip()
    if not raw:
        return Command(action="noop", raw=text)
    match = _SLASH_PATTERN.match(raw)
    if not match:
        return Command(action="message", raw=text, text=raw)
    command = match.group(1).lower()
    arg = (match.group(2) or "").strip()
    if command == "tier":
        return Command(action="set_tier", raw=text, args={"tier": arg.lower()})
    if command == "attach":
        return Command(action="attach", raw=text, args={"path": _parse_single_path_arg(arg)})
    if command == "selfie":
        return Command(action="selfie", raw=text, args={"scene": arg})
    if command in _NO_ARG_ACTIONS:
        return Command(action=_NO_ARG_ACTIONS[command], raw=text)
    return Command(action="unknown", raw=text, args={"command": command, "arg": arg})
