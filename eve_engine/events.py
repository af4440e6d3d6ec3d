"""Append-only conversation event stream."""

from __future__ import annotations

import json
import sys
import threading
from collections import deque
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from typing import Any

from .utils import getenv_flag, now_utc_iso, sanitize_payload

_RECENT_LIMIT = 200


@dataclass
class EventWriter:
    path: Path | None
    session_id: str
    echo: bool = field(default_factory=lambda: getenv_flag("EVE_DEBUG_EVENTS_STDERR"))
    recent: deque[dict[str, Any]] = field(
        default_factory=lambda: deque(maxlen=_RECENT_LIMIT), repr=False, init=False
    )
    write_error: str | None = field(default=None, repr=False, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, init=False)

    def emit(self, event_type: str, **payload: Any) -> dict[str, Any]:
        event = {
            "type": event_type,
            "session_id": self.session_id,
            "ts": now_utc_iso(),
        }
        event.update(sanitize_payload(payload))
        line = f"{json.dumps(event)}\n"
        with self._lock:
            self.recent.append(event)
            if self.path is not None:
                try:
                    self.path.parent.mkdir(parents=True, exist_ok=True)
                    with self.path.open("a", encoding="utf-8") as handle:
                        handle.write(line)
                except OSError as exc:
                    # The event stays in `recent`; report the first failure on stderr.
                    if self.write_error is None:
                        print(f"[eve] events file unwritable ({self.path}): {exc}", file=sys.stderr)
                    self.write_error = str(exc)
        if self.echo:
            print(f"[eve] {line.rstrip()}", file=sys.stderr)
        return event

    def types(self) -> list[str]:
        with self._lock:
            return [str(event["type"]) for event in self.recent]


def null_writer() -> EventWriter:
    """In-memory writer for callers that do not keep an events file."""
    return EventWriter(None, "detached", echo=False)
