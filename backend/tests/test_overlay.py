from __future__ import annotations

import asyncio
from typing import Optional

from tsparse.resolution.orchestrator import Resolver
from tsparse.resolution.overlay import OverlayController, run_hotkey_loop
from tsparse.resolution.preferences import InMemoryFormatUsageStore, UsagePreferenceTracker
from tsparse.resolution.session import ResolutionSession

from conftest import REFERENCE, FixedParser


class FakeClipboard:
    def __init__(self, text: Optional[str] = None, *, fail_read: bool = False, accept_write: bool = True) -> None:
        self.text = text
        self.fail_read = fail_read
        self.accept_write = accept_write
        self.written: list[str] = []

    def read_text(self) -> Optional[str]:
        if self.fail_read:
            raise OSError("clipboard locked")
        return self.text

    def write_text(self, text: str) -> bool:
        self.written.append(text)
        return self.accept_write


class FakeHotkeys:
    def __init__(self, presses: int) -> None:
        self.presses = presses

    async def activations(self):
        for i in range(self.presses):
            yield i


def _overlay(clipboard: FakeClipboard, parser: Optional[FixedParser] = None):
    session = ResolutionSession(Resolver(parser or FixedParser()), debounce_seconds=0, clock=lambda: REFERENCE)
    tracker = UsagePreferenceTracker(InMemoryFormatUsageStore())
    return OverlayController(session, clipboard, tracker), tracker


def test_open_prefills_from_clipboard_markup_and_confirms():
    clipboard = FakeClipboard("<t:1700000000:F>")

    async def run():
        overlay, tracker = _overlay(clipboard)
        await overlay.open()
        assert overlay.input_text == "<t:1700000000:F>"
        assert overlay.selected_index == 5
        markup = await overlay.confirm()
        return markup, tracker

    markup, tracker = asyncio.run(run())
    assert markup == "<t:1700000000:F>"
    assert clipboard.written == ["<t:1700000000:F>"]
    assert tracker.histogram()["F"] == 1


def test_clipboard_read_failure_means_empty_input():
    async def run():
        overlay, _ = _overlay(FakeClipboard(fail_read=True))
        await overlay.open()
        return overlay

    overlay = asyncio.run(run())
    assert overlay.input_text == ""
    assert overlay.result is None
    assert overlay.rows() == []


def test_selection_wraps_in_catalog_order():
    async def run():
        overlay, _ = _overlay(FakeClipboard())
        overlay.select(6)
        overlay.select_next()
        first = overlay.selected_index
        overlay.select_previous()
        return first, overlay.selected_index

    assert asyncio.run(run()) == (0, 6)


def test_typed_input_rows_and_confirm_selected_format():
    parser = FixedParser({"tomorrow at 2pm": 1737036000})

    async def run():
        overlay, tracker = _overlay(FakeClipboard(), parser)
        overlay.edit("tomorrow at 2pm")
        await overlay.session.wait()
        rows = overlay.rows()
        overlay.select_previous()
        return overlay, rows, await overlay.confirm(), tracker

    overlay, rows, markup, tracker = asyncio.run(run())
    assert len(rows) == 7
    assert [r.selected for r in rows].count(True) == 1
    assert rows[0].markup == "<t:1737036000:d>"
    assert markup == "<t:1737036000:R>"
    assert tracker.most_used_index() == 6


def test_unresolved_input_shows_guidance_and_confirm_is_noop():
    clipboard = FakeClipboard()

    async def run():
        overlay, _ = _overlay(clipboard)
        overlay.edit("not a time")
        await overlay.session.wait()
        return overlay, await overlay.confirm()

    overlay, markup = asyncio.run(run())
    assert markup is None
    assert overlay.message
    assert clipboard.written == []


def test_rejected_clipboard_write_returns_none():
    async def run():
        overlay, _ = _overlay(FakeClipboard("<t:1700000000:t>", accept_write=False))
        await overlay.open()
        return await overlay.confirm()

    assert asyncio.run(run()) is None


def test_hotkey_loop_opens_overlay_per_activation():
    opened: list[int] = []

    async def open_overlay() -> None:
        opened.append(len(opened))

    count = asyncio.run(run_hotkey_loop(FakeHotkeys(3), open_overlay))
    assert count == 3
    assert opened == [0, 1, 2]
