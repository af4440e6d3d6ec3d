"""Eve CLI entrypoints."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from .chat.loop import ChatLoop, load_attachment, save_image
from .engine import EveEngine
from .memory.store import DB_PATH, MessageStore
from .models.registry import DEFAULT_TIER, TierRegistry
from .utils import load_dotenv


def _build_parser() -> argparse.ArgumentParser:
    tiers = TierRegistry().names()
    parser = argparse.ArgumentParser(prog="eve", description="Eve persona chat engine")
    sub = parser.add_subparsers(dest="command")

    chat = sub.add_parser("chat", help="Interactive chat loop")
    chat.add_argument("--db", default=str(DB_PATH), help="SQLite conversation store")
    chat.add_argument("--conversation", default="default", help="Conversation id inside the store")
    chat.add_argument("--events", help="Path to events.jsonl")
    chat.add_argument("--out", default="eve_images", help="Directory for received images")
    chat.add_argument("--tier", choices=tiers, default=DEFAULT_TIER)
    chat.add_argument("--api-key", dest="api_key")

    selfie = sub.add_parser("selfie", help="Generate one selfie for a scene")
    selfie.add_argument("--scene", required=True)
    selfie.add_argument("--out", required=True)
    selfie.add_argument("--events")
    selfie.add_argument("--tier", choices=tiers, default=DEFAULT_TIER)
    selfie.add_argument("--api-key", dest="api_key")

    edit = sub.add_parser("edit", help="Edit an image with a prompt (deprecated)")
    edit.add_argument("--image", required=True, help="Path to the source image")
    edit.add_argument("--prompt", required=True)
    edit.add_argument("--out", required=True)
    edit.add_argument("--events")
    edit.add_argument("--tier", choices=tiers, default=DEFAULT_TIER)
    edit.add_argument("--api-key", dest="api_key")

    return parser


def _engine_from_args(args: argparse.Namespace) -> EveEngine:
    events_path = Path(args.events) if args.events else None
    return EveEngine(events_path=events_path, tier=args.tier, api_key=args.api_key)


async def _run_chat(args: argparse.Namespace) -> int:
    engine = _engine_from_args(args)
    store = MessageStore(Path(args.db).expanduser())
    loop = ChatLoop(engine, store, args.conversation, Path(args.out))
    await loop.run()
    return 0


async def _run_selfie(args: argparse.Namespace) -> int:
    engine = _engine_from_args(args)
    image = await engine.generate_visual_selfie(args.scene)
    if not image:
        print("No image this time.", file=sys.stderr)
        return 1
    print(save_image(image, Path(args.out), prefix="selfie"))
    return 0


async def _run_edit(args: argparse.Namespace) -> int:
    source = Path(args.image).expanduser()
    if not source.exists():
        print(f"Image not found: {source}", file=sys.stderr)
        return 2
    engine = _engine_from_args(args)
    try:
        image = await engine.edit_image(load_attachment(source), args.prompt)
    except Exception as exc:
        print(f"Edit failed: {exc}", file=sys.stderr)
        return 1
    if not image:
        print("The model returned no image.", file=sys.stderr)
        return 1
    print(save_image(image, Path(args.out), prefix="edit"))
    return 0


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.command == "chat":
        return asyncio.run(_run_chat(args))
    if args.command == "selfie":
        return asyncio.run(_run_selfie(args))
    if args.command == "edit":
        return asyncio.run(_run_edit(args))
    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
