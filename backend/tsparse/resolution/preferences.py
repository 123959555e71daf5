"""Format usage preference tracking.

The histogram is a hint for picking a default format, never a correctness
dependency: read failures yield an all-zero histogram and write failures are
logged and dropped. Selection helpers are pure functions over a histogram
value so callers can pass it explicitly instead of sharing global state.
"""

from __future__ import annotations

import logging
import math
from typing import Mapping, Optional, Protocol

from tsparse.resolution.formats import CODES, FORMATS

logger = logging.getLogger(__name__)


class FormatUsageStore(Protocol):
    """Backing store for `recordFormatChoice` / `getFormatUsageHistogram`."""

    def load_counts(self) -> Mapping[str, int]: ...

    def increment(self, code: str) -> None: ...


def empty_histogram() -> dict[str, int]:
    return {code: 0 for code in CODES}


def normalize_histogram(counts: Optional[Mapping[str, int]]) -> dict[str, int]:
    """Known codes only, non-negative integer counts, missing codes filled with 0."""
    histogram = empty_histogram()
    if not counts:
        return histogram
    for code in CODES:
        try:
            value = int(counts.get(code, 0) or 0)
        except (TypeError, ValueError):
            value = 0
        histogram[code] = max(0, value)
    return histogram


def most_used_index(histogram: Optional[Mapping[str, int]]) -> int:
    """Index of the most used format; ties go to the earliest catalog entry."""
    counts = normalize_histogram(histogram)
    best_index = 0
    best_count = 0
    for index, code in enumerate(CODES):
        if counts[code] > best_count:
            best_index = index
            best_count = counts[code]
    return best_index


def as_percentages(histogram: Optional[Mapping[str, int]]) -> dict[str, int]:
    """Share of each code in whole percent (display only). Empty when nothing was recorded."""
    counts = normalize_histogram(histogram)
    total = sum(counts.values())
    if total == 0:
        return {}
    return {code: int(math.floor(count * 100 / total + 0.5)) for code, count in counts.items()}


class InMemoryFormatUsageStore:
    def __init__(self, counts: Optional[Mapping[str, int]] = None) -> None:
        self._counts = normalize_histogram(counts)

    def load_counts(self) -> Mapping[str, int]:
        return dict(self._counts)

    def increment(self, code: str) -> None:
        self._counts[code] = self._counts.get(code, 0) + 1


class UsagePreferenceTracker:
    def __init__(self, store: Optional[FormatUsageStore] = None) -> None:
        self._store: FormatUsageStore = store if store is not None else InMemoryFormatUsageStore()

    def histogram(self) -> dict[str, int]:
        try:
            return normalize_histogram(self._store.load_counts())
        except Exception as e:  # noqa: BLE001
            logger.warning("Format usage read failed; using empty histogram: %s", e)
            return empty_histogram()

    def increment(self, format_index: int) -> None:
        """Record one confirmed use of the format at `format_index`."""
        if isinstance(format_index, bool) or not isinstance(format_index, int) or not 0 <= format_index < len(FORMATS):
            logger.error("Invalid format index: %r", format_index)
            return
        try:
            self._store.increment(CODES[format_index])
        except Exception as e:  # noqa: BLE001
            logger.warning("Format usage write failed for %s: %s", CODES[format_index], e)

    def most_used_index(self) -> int:
        return most_used_index(self.histogram())

    def percentages(self) -> dict[str, int]:
        return as_percentages(self.histogram())
