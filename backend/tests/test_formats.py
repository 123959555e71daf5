from __future__ import annotations

from datetime import datetime, timezone

import pytest

from tsparse.resolution.formats import (
    CODES,
    FORMATS,
    MAX_EPOCH,
    clamp_index,
    detect_existing,
    index_of,
    preview,
    render,
)


UTC = timezone.utc

# Saturday 2025-07-05 09:30:00 UTC
EPOCH = 1751707800


def test_catalog_order_is_fixed():
    assert CODES == ("d", "D", "t", "T", "f", "F", "R")
    assert [f.label for f in FORMATS][:2] == ["Short Date", "Long Date"]


@pytest.mark.parametrize("index", range(7))
def test_render_then_detect_recovers_epoch_and_format(index: int):
    found = detect_existing(render(EPOCH, index))
    assert found is not None
    assert found.epoch == EPOCH
    assert found.format_index == index


def test_render_shape():
    assert render(1700000000, 1) == "<t:1700000000:D>"
    assert render(1700000000, 6) == "<t:1700000000:R>"


@pytest.mark.parametrize("bad", [-1, 7, 99, True, "3", None, 2.0])
def test_invalid_index_falls_back_to_short_date(bad):
    assert clamp_index(bad) == 0
    assert render(EPOCH, bad) == f"<t:{EPOCH}:d>"


def test_index_of_rejects_unknown_code():
    assert index_of("F") == 5
    with pytest.raises(ValueError):
        index_of("x")


def test_previews_utc():
    assert preview(EPOCH, 0) == "07/05/2025"
    assert preview(EPOCH, 1) == "July 5, 2025"
    assert preview(EPOCH, 2) == "9:30 AM"
    assert preview(EPOCH, 3) == "9:30:00 AM"
    assert preview(EPOCH, 4) == "July 5, 2025 9:30 AM"
    assert preview(EPOCH, 5) == "Saturday, July 5, 2025 9:30 AM"


def test_preview_uses_zone():
    # EDT is UTC-4 in July.
    assert preview(EPOCH, 2, tz="America/New_York") == "5:30 AM"
    assert preview(EPOCH, 3, tz="Asia/Tokyo") == "6:30:00 PM"


def test_relative_preview_uses_reference():
    now = datetime.fromtimestamp(EPOCH - 2 * 3600, tz=UTC)
    assert preview(EPOCH, 6, now=now) == "in 2 hours"


def test_detect_existing_ignores_out_of_range_and_malformed():
    assert detect_existing("<t:0:R>") is None
    assert detect_existing(f"<t:{MAX_EPOCH + 1}:F>") is None
    assert detect_existing("<t:123:x>") is None
    assert detect_existing("<t:abc:F>") is None
    assert detect_existing("meeting tomorrow") is None


def test_detect_existing_accepts_boundaries_and_embedded_markup():
    assert detect_existing(f"<t:{MAX_EPOCH}:F>").epoch == MAX_EPOCH
    found = detect_existing("see you <t:0:R> then <t:1700000000:t> ok")
    assert found is not None
    assert (found.epoch, found.code) == (1700000000, "t")
