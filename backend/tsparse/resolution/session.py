"""
One live resolution per UI surface.

Each submitted text supersedes the previous attempt: the old attempt's token
is cancelled, and whatever it produces afterwards is dropped without being
shown. Ordering is guaranteed by cancel-then-discard, never by comparing
timestamps.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, Mapping, Optional, Protocol

from tsparse.core.errors import ResolutionCancelled
from tsparse.resolution.cancellation import CancellationToken
from tsparse.resolution.orchestrator import (
    InputSource,
    ResolutionState,
    ResolvedTimestamp,
    StateCallback,
)

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.3

Listener = Callable[[ResolutionState, Optional[ResolvedTimestamp]], None]


class ExpressionResolver(Protocol):
    """What a session needs from a pipeline (in-process `Resolver` or `RemoteResolver`)."""

    def detect(self, text: str) -> Optional[ResolvedTimestamp]: ...

    def resolve_expression(
        self,
        text: str,
        *,
        tz: str = "UTC",
        now: Optional[datetime] = None,
        histogram: Optional[Mapping[str, int]] = None,
        token: Optional[CancellationToken] = None,
        source: InputSource = InputSource.TYPED,
        on_state: Optional[StateCallback] = None,
    ) -> Awaitable[ResolvedTimestamp]: ...


class ResolutionSession:
    def __init__(
        self,
        resolver: ExpressionResolver,
        *,
        tz: str = "UTC",
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        histogram_provider: Optional[Callable[[], Mapping[str, int]]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.tz = tz
        self.state = ResolutionState.IDLE
        self.result: Optional[ResolvedTimestamp] = None
        self._resolver = resolver
        self._debounce = debounce_seconds
        self._histogram_provider = histogram_provider
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._token: Optional[CancellationToken] = None
        self._task: Optional[asyncio.Task[Optional[ResolvedTimestamp]]] = None
        self._listeners: list[Listener] = []

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def submit(self, text: str, source: InputSource = InputSource.TYPED) -> Optional[asyncio.Task[Optional[ResolvedTimestamp]]]:
        """Start resolving `text`, superseding any in-flight attempt.

        Empty text and pasted markup settle synchronously and return None;
        otherwise returns the task running the debounced pipeline. Must be
        called from a running event loop.
        """
        self._cancel_in_flight()

        cleaned = (text or "").strip()
        if not cleaned:
            self._publish(ResolutionState.IDLE, None)
            return None

        existing = self._resolver.detect(cleaned)
        if existing is not None:
            self._publish(ResolutionState.RESOLVED, existing)
            return None

        token = CancellationToken()
        self._token = token
        self._task = asyncio.get_running_loop().create_task(self._run(cleaned, source, token))
        return self._task

    async def wait(self) -> Optional[ResolvedTimestamp]:
        """Wait for the current attempt (if any) and return what is displayed."""
        if self._task is not None:
            await asyncio.shield(self._task)
        return self.result

    def close(self) -> None:
        self._cancel_in_flight()

    async def _run(self, text: str, source: InputSource, token: CancellationToken) -> Optional[ResolvedTimestamp]:
        try:
            if self._debounce > 0:
                await token.run(asyncio.sleep(self._debounce))
            token.raise_if_cancelled()
            result = await self._resolver.resolve_expression(
                text,
                tz=self.tz,
                now=self._clock(),
                histogram=self._histogram(),
                token=token,
                source=source,
                on_state=lambda state: self._advance(state, token),
            )
        except ResolutionCancelled:
            return None

        if token.cancelled:
            logger.debug("Dropping late result of a superseded attempt.")
            return None

        state = ResolutionState.RESOLVED if result.resolved else ResolutionState.UNRESOLVED
        self._publish(state, result)
        return result

    def _histogram(self) -> Optional[Mapping[str, int]]:
        if self._histogram_provider is None:
            return None
        return self._histogram_provider()

    def _advance(self, state: ResolutionState, token: CancellationToken) -> None:
        if token.cancelled:
            return
        self.state = state
        for listener in self._listeners:
            listener(state, self.result)

    def _cancel_in_flight(self) -> None:
        if self._token is not None and not self._token.cancelled:
            self._token.cancel()
            if self.pending:
                self.state = ResolutionState.CANCELLED
        self._token = None

    def _publish(self, state: ResolutionState, result: Optional[ResolvedTimestamp]) -> None:
        self.state = state
        self.result = result
        for listener in self._listeners:
            listener(state, result)
