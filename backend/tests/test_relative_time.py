from __future__ import annotations

from datetime import datetime, timezone

from tsparse.resolution.relative_time import duration_phrase, relative_phrase

from conftest import REFERENCE, REFERENCE_EPOCH


UTC = timezone.utc


def test_now_when_equal():
    assert relative_phrase(REFERENCE_EPOCH, REFERENCE) == "now"


def test_seconds_are_counted():
    assert relative_phrase(REFERENCE_EPOCH + 1, REFERENCE) == "in 1 second"
    assert relative_phrase(REFERENCE_EPOCH + 30, REFERENCE) == "in 30 seconds"
    assert relative_phrase(REFERENCE_EPOCH - 44, REFERENCE) == "44 seconds ago"


def test_threshold_rollover():
    assert relative_phrase(REFERENCE_EPOCH + 45, REFERENCE) == "in a minute"
    assert relative_phrase(REFERENCE_EPOCH + 10 * 60, REFERENCE) == "in 10 minutes"
    assert relative_phrase(REFERENCE_EPOCH + 45 * 60, REFERENCE) == "in an hour"


def test_rounds_to_nearest_not_floor():
    # 90 minutes -> 1.5 hours -> "2 hours"
    assert relative_phrase(REFERENCE_EPOCH + 90 * 60, REFERENCE) == "in 2 hours"
    assert relative_phrase(REFERENCE_EPOCH - 3 * 86400, REFERENCE) == "3 days ago"


def test_calendar_month():
    start = datetime(2025, 1, 31, tzinfo=UTC)
    assert duration_phrase(start, datetime(2025, 2, 28, tzinfo=UTC)) == "a month"
    assert duration_phrase(datetime(2025, 1, 1, tzinfo=UTC), datetime(2025, 4, 1, tzinfo=UTC)) == "3 months"


def test_years():
    assert duration_phrase(datetime(2023, 1, 15, tzinfo=UTC), datetime(2025, 1, 15, tzinfo=UTC)) == "2 years"
    assert relative_phrase(REFERENCE_EPOCH - 365 * 86400, REFERENCE) == "a year ago"


def test_naive_reference_is_treated_as_utc():
    naive = REFERENCE.replace(tzinfo=None)
    assert relative_phrase(REFERENCE_EPOCH + 3600, naive) == "in an hour"
