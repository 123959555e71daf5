"""
Relative time phrasing for the `R` format preview.

Mirrors how chat clients render `<t:EPOCH:R>`: each unit is rounded half-up
(not floored), and the first unit whose rounded count stays under its
threshold wins. Months and years are measured on the calendar, so "in a
month" from Jan 31 lands on the last day of February rather than a fixed
30-day span.
"""

from __future__ import annotations

import math
import time
from datetime import datetime, timezone
from typing import Optional

from dateutil.relativedelta import relativedelta

UTC = timezone.utc

# Upper bounds (exclusive) for each unit before rolling over to the next one.
SECONDS_THRESHOLD = 45
MINUTES_THRESHOLD = 45
HOURS_THRESHOLD = 22
DAYS_THRESHOLD = 26
MONTHS_THRESHOLD = 11


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _calendar_months(earlier: datetime, later: datetime) -> float:
    """Fractional calendar months between two instants (earlier <= later)."""
    delta = relativedelta(later, earlier)
    whole = delta.years * 12 + delta.months
    anchor = earlier + relativedelta(months=whole)
    next_anchor = earlier + relativedelta(months=whole + 1)
    span = (next_anchor - anchor).total_seconds()
    if span <= 0:
        return float(whole)
    return whole + (later - anchor).total_seconds() / span


def _unit(count: int, singular: str, article: str) -> str:
    if count <= 1:
        return f"{article} {singular}"
    return f"{count} {singular}s"


def duration_phrase(earlier: datetime, later: datetime) -> str:
    """Unsigned phrase ("3 hours", "a month") for the gap between two instants."""
    span = (later - earlier).total_seconds()

    seconds = _round_half_up(span)
    if seconds < SECONDS_THRESHOLD:
        return "1 second" if seconds == 1 else f"{seconds} seconds"

    minutes = _round_half_up(span / 60)
    if minutes < MINUTES_THRESHOLD:
        return _unit(minutes, "minute", "a")

    hours = _round_half_up(span / 3600)
    if hours < HOURS_THRESHOLD:
        return _unit(hours, "hour", "an")

    days = _round_half_up(span / 86400)
    if days < DAYS_THRESHOLD:
        return _unit(days, "day", "a")

    months_exact = _calendar_months(earlier, later)
    months = _round_half_up(months_exact)
    if months < MONTHS_THRESHOLD:
        return _unit(months, "month", "a")

    return _unit(_round_half_up(months_exact / 12), "year", "a")


def relative_phrase(epoch_seconds: int, now: Optional[datetime] = None) -> str:
    """Signed phrase such as "in 2 hours", "3 days ago" or "now"."""
    target = datetime.fromtimestamp(int(epoch_seconds), tz=UTC)
    if now is None:
        reference = datetime.fromtimestamp(time.time(), tz=UTC)
    else:
        reference = now.astimezone(UTC) if now.tzinfo else now.replace(tzinfo=UTC)

    if _round_half_up(abs((target - reference).total_seconds())) == 0:
        return "now"
    if target > reference:
        return f"in {duration_phrase(reference, target)}"
    return f"{duration_phrase(target, reference)} ago"
