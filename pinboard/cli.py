#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from .client.app import PinboardClient
from .client.config import ClientSettings
from .client.device import get_or_create_device_id
from .client.errors import RemoteError
from .client.state import LoggingRenderer
from .client.storage import KeyValueFile

def _client(args: argparse.Namespace) -> PinboardClient:
    overrides = {}
    if args.api_base:
        overrides["API_BASE"] = args.api_base
    if args.state_file:
        overrides["STATE_FILE"] = args.state_file
    renderer = LoggingRenderer() if args.verbose else None
    return PinboardClient(ClientSettings(**overrides), renderer=renderer)

def _print_pins(pins) -> None:
    for p in sorted(pins, key=lambda p: p.time or 0, reverse=True):
        when = datetime.fromtimestamp((p.time or 0) / 1000, tz=timezone.utc).isoformat()
        print(f"{p.text or '(no text)'}\n  {when}  {p.author}  ({p.pos.x:.3f}, {p.pos.y:.3f}, {p.pos.z:.3f})  {p.id}")

def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("pinboard.main:app", host=args.host, port=args.port, log_level="info")
    return 0

def cmd_device_id(args: argparse.Namespace) -> int:
    settings = ClientSettings(**({"STATE_FILE": args.state_file} if args.state_file else {}))
    print(get_or_create_device_id(KeyValueFile(Path(settings.STATE_FILE))))
    return 0

async def _list(args: argparse.Namespace) -> int:
    async with _client(args) as client:
        await client.start(poll=False)
        _print_pins(client.pins)
        print(client.status)
    return 0

async def _add(args: argparse.Namespace) -> int:
    async with _client(args) as client:
        await client.start(poll=False)
        pin = await client.create_pin({"x": args.x, "y": args.y, "z": args.z}, args.text)
        print(f"{pin.id}: {client.status}")
    return 0

async def _push(args: argparse.Namespace) -> int:
    async with _client(args) as client:
        cached = client.store.load()
        try:
            count = await client.remote.push(cached)
        except RemoteError as exc:
            print(f"ERROR {exc}")
            return 1
        print(f"Pushed {len(cached)} cached pins; backend holds {count}")
    return 0

async def _sync(args: argparse.Namespace) -> int:
    async with _client(args) as client:
        client.state.load_cached()
        status = await client.sync()
        print(status)
    return 1 if status.startswith("Sync failed") else 0

async def _clear(args: argparse.Namespace) -> int:
    if not args.yes:
        answer = input("Delete ALL pins from the database? [y/N]: ").strip().lower()
        if answer not in {"y", "yes"}:
            return 0
    async with _client(args) as client:
        await client.start(poll=False)
        failed = await client.clear_all_pins()
        print(client.status + (f" ({failed} deletes failed)" if failed else ""))
    return 1 if failed else 0

async def _status(args: argparse.Namespace) -> int:
    async with _client(args) as client:
        try:
            status = await client.remote.get_sync_status()
        except RemoteError as exc:
            print(f"ERROR {exc}")
            return 1
        print(json.dumps(status, indent=2))
    return 0

async def _watch(args: argparse.Namespace) -> int:
    async with _client(args) as client:
        await client.start(poll=True)
        print(client.status)
        last = None
        while True:
            await asyncio.sleep(client.scheduler.poll_interval)
            if len(client.pins) != last:
                last = len(client.pins)
                print(f"{last} pins")

def _run(coro_fn):
    def runner(args: argparse.Namespace) -> int:
        return asyncio.run(coro_fn(args))
    return runner

def main() -> int:
    parser = argparse.ArgumentParser(prog="pinctl", description="Shared scan pins: backend server and headless client.")
    parser.add_argument("--api-base", help="Backend URL (default: API_BASE setting).")
    parser.add_argument("--state-file", help="Device-local storage file (default: STATE_FILE setting).")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log pin and status changes.")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_serve = sub.add_parser("serve", help="Run the backend API.")
    p_serve.add_argument("--host", default="0.0.0.0")
    p_serve.add_argument("--port", type=int, default=3001)
    p_serve.set_defaults(func=cmd_serve)

    sub.add_parser("device-id", help="Print this device's id.").set_defaults(func=cmd_device_id)
    sub.add_parser("list", help="Load, pull and print pins.").set_defaults(func=_run(_list))

    p_add = sub.add_parser("add", help="Create a pin.")
    p_add.add_argument("--x", type=float, required=True)
    p_add.add_argument("--y", type=float, required=True)
    p_add.add_argument("--z", type=float, required=True)
    p_add.add_argument("--text", default="")
    p_add.set_defaults(func=_run(_add))

    sub.add_parser("push", help="Batch-merge cached pins into the backend.").set_defaults(func=_run(_push))
    sub.add_parser("sync", help="Cloud sync, then pull.").set_defaults(func=_run(_sync))

    p_clear = sub.add_parser("clear", help="Delete all pins.")
    p_clear.add_argument("--yes", action="store_true", help="Do not ask for confirmation.")
    p_clear.set_defaults(func=_run(_clear))

    sub.add_parser("status", help="Print backend sync status.").set_defaults(func=_run(_status))
    sub.add_parser("watch", help="Poll the backend until interrupted.").set_defaults(func=_run(_watch))

    args = parser.parse_args()
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except KeyboardInterrupt:
        print("ERROR interrupted")
        return 130

if __name__ == "__main__":
    raise SystemExit(main())
