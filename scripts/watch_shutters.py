#!/usr/bin/env python3
"""Watch a Calyps'HOME box: list its shutters, then print live moves.

Optionally sends one command first (``--level`` or ``--stop``) so the
optimistic prediction and the box's confirmation can be seen side by side.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path

# Allow running from repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pycalypshome import (  # noqa: E402
    CalypshomeClient,
    CalypshomeConfig,
    CalypshomeError,
    ShutterSnapshot,
)


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="List Calyps'HOME shutters and follow their live position.",
    )
    parser.add_argument(
        "--url",
        default=None,
        help="Box base URL (defaults to CALYPSHOME_URL).",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=0,
        help="Maximum runtime in seconds (0 = run until Ctrl+C).",
    )
    target = parser.add_mutually_exclusive_group()
    target.add_argument(
        "--level",
        nargs=2,
        metavar=("ID", "LEVEL"),
        help="Move shutter ID to LEVEL (0-100) after discovery.",
    )
    target.add_argument(
        "--stop",
        metavar="ID",
        help="Stop shutter ID after discovery.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logs.",
    )
    return parser.parse_args()


def _format(snapshot: ShutterSnapshot) -> str:
    return (
        f"{snapshot.identity:>6}  {snapshot.display_name:<20}  "
        f"level={snapshot.current_level:>3}  target={snapshot.target_level:>3}  "
        f"{snapshot.motion_state.name}"
    )


def _on_change(snapshot: ShutterSnapshot) -> None:
    ts_text = time.strftime("%H:%M:%S")
    print(f"[watch] {ts_text} {_format(snapshot)}")


async def _run(args: argparse.Namespace) -> int:
    overrides = {"url": args.url} if args.url else {}
    config = CalypshomeConfig.from_env(**overrides)

    async with CalypshomeClient(config, on_change=_on_change) as client:
        shutters = await client.refresh_inventory()
        print(f"[watch] {len(shutters)} shutter(s) on {config.base_url}")

        channel_task = client.start_live_channel() if config.event_channel_enabled else None

        if args.level:
            identity, level = args.level
            await client.set_level(identity, int(level))
        elif args.stop:
            await client.stop(args.stop)

        started_at = time.monotonic()
        while args.duration <= 0 or time.monotonic() - started_at < args.duration:
            if channel_task is not None and channel_task.done():
                # Only a configuration problem ends the channel on its own.
                channel_task.result()
                break
            await asyncio.sleep(1.0)
        print(f"[watch] Reached --duration={args.duration}s, stopping.")
    return 0


def _main() -> int:
    args = _parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        return asyncio.run(_run(args))
    except KeyboardInterrupt:
        return 0
    except (CalypshomeError, ValueError) as exc:
        print(f"[watch] {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(_main())
