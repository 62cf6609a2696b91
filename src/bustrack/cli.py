"""Terminal front-end: follow one bus and print its status."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from typing import TextIO

from bustrack._constants import BASE_LAYERS
from bustrack.config import TrackerConfig
from bustrack.controller import SessionController
from bustrack.exceptions import BusTrackConfigError, BusTrackValidationError
from bustrack.models.session import TrackingSnapshot

_PROMPT = "Enter bus number to track (e.g., TN01AB1234): "


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="bustrack", description="Follow the live position of a bus.")
    target = parser.add_mutually_exclusive_group()
    target.add_argument("--url", help="Page URL carrying ?track=<id> or /track/<id>")
    target.add_argument("--track", help="Bus number to track")
    parser.add_argument("--base-url", help="Location service endpoint")
    parser.add_argument("--interval", type=float, help="Seconds between polls")
    parser.add_argument("--layer", choices=sorted(BASE_LAYERS), help="Initial base layer")
    parser.add_argument("--output-dir", help="Directory for the rendered map")
    parser.add_argument("--no-map", action="store_true", help="Do not render a map")
    parser.add_argument("--once", action="store_true", help="Fetch once and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def _prompt_for_bus() -> str | None:
    try:
        return input(_PROMPT)
    except EOFError:
        return None


def format_snapshot(snapshot: TrackingSnapshot, *, map_available: bool = True) -> str:
    """One status line for *snapshot*."""
    if not snapshot.is_active:
        return "Bus (not selected)"
    parts = [f"Bus {snapshot.vehicle_id}"]
    status = snapshot.status
    if status is not None:
        parts.append(f"Driver: {status.operator_name or 'N/A'}")
        parts.append(f"Updated: {status.last_updated_at.astimezone().strftime('%H:%M:%S')}")
    location = snapshot.location
    if location is not None:
        parts.append(f"({location.latitude:.5f}, {location.longitude:.5f})")
    if snapshot.is_fetching:
        parts.append("Updating...")
    elif status is not None and status.is_stale:
        parts.append("Stale")
    elif status is not None:
        parts.append("Live")
    if location is not None and not map_available:
        parts.append("[map unavailable]")
    return " | ".join(parts)


def _build_config(args: argparse.Namespace) -> TrackerConfig:
    overrides: dict[str, object] = {}
    if args.base_url:
        overrides["base_url"] = args.base_url
    if args.interval is not None:
        overrides["poll_interval"] = args.interval
    if args.layer:
        overrides["default_layer"] = args.layer
    if args.output_dir:
        overrides["output_dir"] = args.output_dir
    return TrackerConfig.from_env(**overrides)


async def _run(args: argparse.Namespace, config: TrackerConfig, out: TextIO) -> int:
    async with SessionController(
        config,
        render_map=not args.no_map,
        manual_entry=_prompt_for_bus,
    ) as controller:

        def _print(snapshot: TrackingSnapshot) -> None:
            if snapshot.is_fetching:
                return
            print(format_snapshot(snapshot, map_available=controller.map_available), file=out)
            error = controller.visible_error
            if error is not None:
                print(f"Error: {error.message}", file=out)

        controller.add_listener(_print)
        try:
            if args.track:
                snapshot = await controller.start(args.track)
            else:
                snapshot = await controller.run(args.url)
        except BusTrackValidationError as exc:
            print(f"Error: {exc}", file=out)
            return 2
        if snapshot is None:
            print("No bus selected.", file=out)
            return 1
        if args.once:
            return 0 if snapshot.error is None else 1

        print(f"Location updates every {config.poll_interval:g} seconds. Press Ctrl-C to stop.", file=out)
        try:
            await asyncio.Event().wait()
        finally:
            controller.stop()
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        config = _build_config(args)
    except BusTrackConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2
    try:
        return asyncio.run(_run(args, config, sys.stdout))
    except KeyboardInterrupt:
        return 0
