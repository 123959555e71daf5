"""Discord timestamp format catalog.

The catalog is fixed and ordered; keyboard navigation cycles it in this order
and the normalizer prompt refers to formats by index.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Final, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from tsparse.resolution.relative_time import relative_phrase

MAX_EPOCH: Final[int] = 2147483647

_MONTHS: Final[tuple[str, ...]] = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
_WEEKDAYS: Final[tuple[str, ...]] = (
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
)

_MARKUP = re.compile(r"<t:(\d+):([dDtTfFR])>")


@dataclass(frozen=True)
class DiscordFormat:
    code: str
    label: str
    description_example: str


FORMATS: Final[tuple[DiscordFormat, ...]] = (
    DiscordFormat("d", "Short Date", "07/05/2025"),
    DiscordFormat("D", "Long Date", "July 5, 2025"),
    DiscordFormat("t", "Short Time", "9:30 AM"),
    DiscordFormat("T", "Long Time", "9:30:00 AM"),
    DiscordFormat("f", "Short Date/Time", "July 5, 2025 9:30 AM"),
    DiscordFormat("F", "Long Date/Time", "Saturday, July 5, 2025 9:30 AM"),
    DiscordFormat("R", "Relative Time", "in 2 hours"),
)

CODES: Final[tuple[str, ...]] = tuple(f.code for f in FORMATS)


@dataclass(frozen=True)
class ExistingMarkup:
    """A `<t:EPOCH:CODE>` tag found verbatim in user input."""

    epoch: int
    code: str

    @property
    def format_index(self) -> int:
        return index_of(self.code)


def clamp_index(index: object) -> int:
    """Valid catalog index, or 0 (short date) for anything else."""
    if isinstance(index, bool) or not isinstance(index, int):
        return 0
    if 0 <= index < len(FORMATS):
        return index
    return 0


def code_at(index: int) -> str:
    return FORMATS[clamp_index(index)].code


def index_of(code: str) -> int:
    try:
        return CODES.index(code)
    except ValueError as e:
        raise ValueError(f"Unknown format code: {code!r}") from e


def render(epoch_seconds: int, index: int) -> str:
    """Wire markup, e.g. `<t:1700000000:D>`."""
    return f"<t:{int(epoch_seconds)}:{code_at(index)}>"


def detect_existing(text: str) -> Optional[ExistingMarkup]:
    """First well-formed markup tag in `text` whose epoch is within 1..2^31-1."""
    for match in _MARKUP.finditer(text or ""):
        epoch = int(match.group(1))
        if 1 <= epoch <= MAX_EPOCH:
            return ExistingMarkup(epoch=epoch, code=match.group(2))
    return None


def _zone(tz: str) -> ZoneInfo:
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        return ZoneInfo("UTC")


def _long_date(dt: datetime) -> str:
    return f"{_MONTHS[dt.month - 1]} {dt.day}, {dt.year}"


def _short_time(dt: datetime, *, seconds: bool = False) -> str:
    hour = dt.hour % 12 or 12
    suffix = "AM" if dt.hour < 12 else "PM"
    if seconds:
        return f"{hour}:{dt.minute:02d}:{dt.second:02d} {suffix}"
    return f"{hour}:{dt.minute:02d} {suffix}"


def preview(epoch_seconds: int, index: int, *, tz: str = "UTC", now: Optional[datetime] = None) -> str:
    """Human-readable rendering of what the markup will display (en-US)."""
    code = code_at(index)
    if code == "R":
        return relative_phrase(epoch_seconds, now)

    dt = datetime.fromtimestamp(int(epoch_seconds), tz=timezone.utc).astimezone(_zone(tz))
    if code == "d":
        return f"{dt.month:02d}/{dt.day:02d}/{dt.year}"
    if code == "D":
        return _long_date(dt)
    if code == "t":
        return _short_time(dt)
    if code == "T":
        return _short_time(dt, seconds=True)
    if code == "f":
        return f"{_long_date(dt)} {_short_time(dt)}"
    return f"{_WEEKDAYS[dt.weekday()]}, {_long_date(dt)} {_short_time(dt)}"
