"""Command line shell over the resolution pipeline.

Usage:
  tsparse resolve "tomorrow at 2pm" --tz Europe/Berlin --all
  tsparse resolve "next friday 9am" --pick 5     # record a confirmed choice
  tsparse formats
  tsparse stats
  tsparse serve --port 8857

Reads configuration from the environment or `.env` (see tsparse.core.config).
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

import uvicorn
from sqlalchemy.exc import SQLAlchemyError

from tsparse.core.config import Settings, get_settings
from tsparse.core.db import create_session_factory, ensure_schema, get_engine
from tsparse.repositories.format_usage_repo import SqlFormatUsageStore
from tsparse.resolution.date_parser import DeterministicDateParser
from tsparse.resolution.formats import FORMATS, preview, render
from tsparse.resolution.normalizer import build_normalizer
from tsparse.resolution.orchestrator import Resolver
from tsparse.resolution.preferences import UsagePreferenceTracker


logger = logging.getLogger("tsparse.cli")


def _tracker(settings: Settings) -> UsagePreferenceTracker:
    try:
        ensure_schema(get_engine(settings.prefs_database_url))
    except SQLAlchemyError as e:
        logger.warning("Preference store unavailable (%s); using in-memory counts.", e)
        return UsagePreferenceTracker()
    return UsagePreferenceTracker(SqlFormatUsageStore(create_session_factory(settings.prefs_database_url)))


async def _resolve(settings: Settings, args: argparse.Namespace) -> int:
    tracker = _tracker(settings)
    normalizer = build_normalizer(settings)
    resolver = Resolver(DeterministicDateParser(), normalizer)
    now = datetime.now(timezone.utc)
    try:
        result = await resolver.resolve(args.text, tz=args.tz, now=now, histogram=tracker.histogram())
    finally:
        if normalizer is not None:
            await normalizer.aclose()

    if result is None:
        print("Nothing to resolve.")
        return 2
    if not result.resolved or result.epoch_seconds is None:
        print(result.message)
        return 1

    index = result.format_index if args.pick is None else args.pick
    print(render(result.epoch_seconds, index))
    flag = "  (low confidence)" if result.low_confidence else ""
    print(f"{preview(result.epoch_seconds, index, tz=args.tz, now=now)}  [{result.method.value}, {result.confidence:.2f}]{flag}")
    if args.all:
        for i, fmt in enumerate(FORMATS):
            marker = "*" if i == index else " "
            print(f"{marker} {i} {render(result.epoch_seconds, i):<20} {preview(result.epoch_seconds, i, tz=args.tz, now=now)}")
    if args.pick is not None:
        tracker.increment(args.pick)
    return 0


def _formats() -> int:
    for i, fmt in enumerate(FORMATS):
        print(f"{i} {fmt.code} {fmt.label:<16} {fmt.description_example}")
    return 0


def _stats(settings: Settings) -> int:
    tracker = _tracker(settings)
    histogram = tracker.histogram()
    percentages = tracker.percentages()
    for fmt in FORMATS:
        print(f"{fmt.code} {fmt.label:<16} {histogram[fmt.code]:>6} {percentages.get(fmt.code, 0):>4}%")
    print(f"default: {FORMATS[tracker.most_used_index()].label}")
    return 0


def _serve(settings: Settings, args: argparse.Namespace) -> int:
    if not settings.static_api_key:
        raise SystemExit("Missing TSP_STATIC_API_KEY in environment.")
    uvicorn.run("tsparse.main:app", host=args.host, port=args.port or settings.port, log_level="info")
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="tsparse", description="Time text to Discord timestamp markup.")
    sub = ap.add_subparsers(dest="command", required=True)

    resolve = sub.add_parser("resolve", help="resolve a time expression")
    resolve.add_argument("text")
    resolve.add_argument("--tz", default="UTC", help="IANA zone, e.g. America/New_York")
    resolve.add_argument("--all", action="store_true", help="show all formats")
    resolve.add_argument("--pick", type=int, choices=range(len(FORMATS)), help="confirm this format index")

    sub.add_parser("formats", help="list the timestamp formats")
    sub.add_parser("stats", help="show local format usage")

    serve = sub.add_parser("serve", help="run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int)
    return ap


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.command == "serve" else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    if args.command == "formats":
        return _formats()

    settings = get_settings()
    if args.command == "resolve":
        return asyncio.run(_resolve(settings, args))
    if args.command == "stats":
        return _stats(settings)
    return _serve(settings, args)


if __name__ == "__main__":
    raise SystemExit(main())
