"""Overlay controller: the logic behind the hotkey popup.

Window chrome, tray and OS integration live in the GUI shell; it supplies the
platform ports below and renders what this controller exposes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Optional, Protocol

from tsparse.resolution.formats import FORMATS, preview, render
from tsparse.resolution.orchestrator import InputSource, ResolutionState, ResolvedTimestamp
from tsparse.resolution.preferences import UsagePreferenceTracker
from tsparse.resolution.session import ResolutionSession

logger = logging.getLogger(__name__)


class ClipboardPort(Protocol):
    def read_text(self) -> Optional[str]: ...

    def write_text(self, text: str) -> bool: ...


class HotkeyPort(Protocol):
    def activations(self) -> AsyncIterator[object]: ...


@dataclass(frozen=True)
class FormatRow:
    index: int
    label: str
    preview: str
    markup: str
    selected: bool


class OverlayController:
    def __init__(
        self,
        session: ResolutionSession,
        clipboard: ClipboardPort,
        tracker: Optional[UsagePreferenceTracker] = None,
    ) -> None:
        self.session = session
        self.input_text = ""
        self.selected_index = 0
        self._clipboard = clipboard
        self._tracker = tracker or UsagePreferenceTracker()
        session.add_listener(self._on_update)

    @property
    def result(self) -> Optional[ResolvedTimestamp]:
        return self.session.result

    @property
    def message(self) -> Optional[str]:
        if self.result is not None and not self.result.resolved:
            return self.result.message
        return None

    async def open(self) -> None:
        """Pre-fill from the clipboard. Read failures mean an empty input, never an error."""
        try:
            text = self._clipboard.read_text()
        except Exception as e:  # noqa: BLE001
            logger.warning("Clipboard read failed: %s", e)
            text = None
        if text and text.strip():
            self.input_text = text
            self.session.submit(text, InputSource.CLIPBOARD)

    def edit(self, text: str) -> None:
        self.input_text = text
        self.session.submit(text, InputSource.TYPED)

    def select(self, index: int) -> None:
        if 0 <= index < len(FORMATS):
            self.selected_index = index

    def select_next(self) -> None:
        self.selected_index = (self.selected_index + 1) % len(FORMATS)

    def select_previous(self) -> None:
        self.selected_index = (self.selected_index - 1) % len(FORMATS)

    def rows(self) -> list[FormatRow]:
        result = self.result
        if result is None or result.epoch_seconds is None:
            return []
        epoch = result.epoch_seconds
        return [
            FormatRow(
                index=i,
                label=f.label,
                preview=preview(epoch, i, tz=self.session.tz),
                markup=render(epoch, i),
                selected=i == self.selected_index,
            )
            for i, f in enumerate(FORMATS)
        ]

    async def confirm(self) -> Optional[str]:
        """Copy the selected rendering. Returns the markup if the clipboard accepted it."""
        result = self.result
        if result is None or not result.resolved or result.epoch_seconds is None:
            return None

        markup = render(result.epoch_seconds, self.selected_index)
        self._tracker.increment(self.selected_index)
        try:
            written = self._clipboard.write_text(markup)
        except Exception as e:  # noqa: BLE001
            logger.warning("Clipboard write failed: %s", e)
            written = False
        return markup if written else None

    def close(self) -> None:
        self.session.close()

    def _on_update(self, state: ResolutionState, result: Optional[ResolvedTimestamp]) -> None:
        if state == ResolutionState.RESOLVED and result is not None:
            self.selected_index = result.format_index


async def run_hotkey_loop(hotkeys: HotkeyPort, open_overlay: Callable[[], Awaitable[None]]) -> int:
    """Open a fresh overlay per activation until the stream ends. Returns the activation count."""
    count = 0
    async for _ in hotkeys.activations():
        count += 1
        await open_overlay()
    return count
