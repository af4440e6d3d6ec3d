"""Shared utilities for the Eve engine."""

from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
import tomllib
from typing import Any, Mapping


def now_utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def sanitize_payload(payload: Any) -> Any:
    if payload is None:
        return None
    if isinstance(payload, (str, int, float, bool)):
        if isinstance(payload, str) and payload.startswith("data:") and ";base64," in payload:
            return f"<data-uri:{len(payload)}>"
        return payload
    if isinstance(payload, (bytes, bytearray)):
        return f"<bytes:{len(payload)}>"
    if isinstance(payload, Mapping):
        sanitized: dict[str, Any] = {}
        for key, value in payload.items():
            lowered = str(key).lower()
            if lowered in {"image", "image_bytes", "data", "attachment"}:
                sanitized[str(key)] = "<omitted>" if value else value
                continue
            sanitized[str(key)] = sanitize_payload(value)
        return sanitized
    if isinstance(payload, (list, tuple)):
        return [sanitize_payload(item) for item in payload]
    return str(payload)


def getenv_flag(key: str, default: bool = False) -> bool:
    raw = os.getenv(key)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def resolve_api_key(explicit: str | None = None) -> str:
    """Explicit key first, then the environment, else an empty string."""
    if explicit:
        return explicit
    for name in ("GEMINI_API_KEY", "GOOGLE_API_KEY", "API_KEY"):
        value = os.getenv(name)
        if value:
            return value
    return ""


def load_dotenv(path: Path | None = None, override: bool = False) -> bool:
    env_path = path or _default_env_path()
    if not env_path.exists():
        return False
    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[7:].strip()
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            continue
        value = value.strip()
        if value and value[0] == value[-1] and value.startswith(("\"", "'")):
            value = value[1:-1]
        if not override and key in os.environ:
            continue
        os.environ[key] = value
    return True


def _default_env_path() -> Path:
    cwd = Path.cwd()
    repo_root = _find_repo_root(cwd)
    if repo_root:
        env_path = repo_root / ".env"
        if env_path.exists():
            return env_path
    module_root = _find_repo_root(Path(__file__).resolve().parent)
    if module_root:
        env_path = module_root / ".env"
        if env_path.exists():
            return env_path
    return cwd / ".env"


def _find_repo_root(start: Path) -> Path | None:
    for current in (start,) + tuple(start.parents):
        if (current / "eve_engine").is_dir():
            return current
        pyproject = current / "pyproject.toml"
        if pyproject.exists():
            try:
                data = tomllib.loads(pyproject.read_text(encoding="utf-8"))
            except Exception:
                continue
            if data.get("project", {}).get("name") == "eve":
                return current
    return None
