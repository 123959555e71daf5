"""
Deterministic natural-language date parsing.

Thin adapter over `dateparser`:
- No network, no state; the same text and reference instant give the same epoch.
- Forward-looking: "Friday" means the next upcoming Friday, never a past one.
- Bounded: input is truncated and at most a fixed number of rewrites are tried.
- "No match" is an ordinary outcome and returns None.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Optional, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import dateparser

from tsparse.resolution.formats import MAX_EPOCH

logger = logging.getLogger(__name__)

MAX_INPUT_CHARS = 512
MAX_CANDIDATES = 5

# Connectives dateparser tends to trip over ("tomorrow @ 2pm", "on friday at noon").
_FILLER = re.compile(r"(?:^|\s)(?:@|at|on)(?=\s)", re.IGNORECASE)
_TRAILING_PUNCT = re.compile(r"[\s.,;:!?]+$")
_WHITESPACE = re.compile(r"\s+")
# "next friday" / "this friday": forward bias already picks the upcoming day.
_RELATIVE_WEEKDAY = re.compile(
    r"\b(?:next|this)\s+"
    r"(?=(?:mon|tues?|wed(?:nes)?|thu(?:rs?)?|fri|sat(?:ur)?|sun)(?:day)?\b)",
    re.IGNORECASE,
)


def _zone(tz: str) -> ZoneInfo:
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        logger.warning("Unknown timezone %r; falling back to UTC.", tz)
        return ZoneInfo("UTC")


def _candidates(text: str) -> list[str]:
    """Ordered, de-duplicated rewrites of `text` (at most MAX_CANDIDATES)."""
    base = _WHITESPACE.sub(" ", text).strip()
    stripped = _TRAILING_PUNCT.sub("", base)
    no_filler = _WHITESPACE.sub(" ", _FILLER.sub(" ", stripped)).strip()
    bare_weekday = _RELATIVE_WEEKDAY.sub("", stripped).strip()
    bare_weekday_no_filler = _RELATIVE_WEEKDAY.sub("", no_filler).strip()

    seen: list[str] = []
    for c in (base, stripped, no_filler, bare_weekday, bare_weekday_no_filler):
        if c and c not in seen:
            seen.append(c)
    return seen[:MAX_CANDIDATES]


class DeterministicDateParser:
    """Free text + reference instant -> epoch seconds, or None."""

    def __init__(self, languages: Sequence[str] = ("en",), max_chars: int = MAX_INPUT_CHARS) -> None:
        self._languages = list(languages)
        self._max_chars = max_chars

    def parse(self, text: str, reference: datetime, tz: str = "UTC") -> Optional[int]:
        if reference.tzinfo is None:
            raise ValueError("reference must be timezone-aware")

        cleaned = (text or "").strip()[: self._max_chars]
        if not cleaned:
            return None

        zone = _zone(tz)
        # dateparser expects a naive wall-clock base expressed in TIMEZONE.
        base = reference.astimezone(zone).replace(tzinfo=None)

        for candidate in _candidates(cleaned):
            epoch = self._parse_one(candidate, base, zone)
            if epoch is not None:
                return epoch
        return None

    def _parse_one(self, candidate: str, base: datetime, zone: ZoneInfo) -> Optional[int]:
        settings = {
            "RELATIVE_BASE": base,
            "TIMEZONE": zone.key,
            "RETURN_AS_TIMEZONE_AWARE": True,
            "PREFER_DATES_FROM": "future",
        }
        try:
            dt = dateparser.parse(candidate, languages=self._languages, settings=settings)
        except Exception as e:  # noqa: BLE001
            # dateparser occasionally raises on odd tokens; treat as no match.
            logger.debug("dateparser failed on %r: %s", candidate, e)
            return None
        if dt is None:
            return None

        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=zone)
        epoch = int(dt.astimezone(timezone.utc).timestamp())
        if not 1 <= epoch <= MAX_EPOCH:
            logger.debug("Parsed %r to out-of-range epoch %s", candidate, epoch)
            return None
        return epoch
