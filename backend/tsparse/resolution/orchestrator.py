"""Resolution pipeline: time text -> epoch + suggested format.

Order of attempts for one input:
1. Existing `<t:EPOCH:CODE>` markup is returned as-is (confidence 1.0).
2. Intent normalizer -> deterministic parse of the normalized text.
3. Deterministic parse of the raw text (confidence penalized when the
   normalizer did answer but its rewrite was unparseable).
4. Unresolved, with guidance text tuned to where the input came from.

The same Resolver serves the HTTP service (one call per request) and the
desktop session (which adds debounce and supersession on top).
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tsparse.resolution.cancellation import CancellationToken
from tsparse.resolution.date_parser import DeterministicDateParser
from tsparse.resolution.formats import clamp_index, detect_existing, render
from tsparse.resolution.normalizer import IntentNormalizer
from tsparse.resolution.preferences import most_used_index, normalize_histogram

logger = logging.getLogger(__name__)

UTC = timezone.utc

RAW_FALLBACK_PENALTY = 0.7
DETERMINISTIC_FALLBACK_CONFIDENCE = 0.7
LOW_CONFIDENCE_THRESHOLD = 0.5

TYPED_GUIDANCE = "Unable to parse date/time. Please try a more specific format."
CLIPBOARD_GUIDANCE = 'Nothing on your clipboard looks like a time. Try something like "tomorrow at 2pm" or "next Friday".'


class ResolutionMethod(str, Enum):
    EXISTING_MARKUP = "existing-markup"
    LLM_NORMALIZED = "llm-normalized"
    LLM_FALLBACK_RAW = "llm-fallback-raw"
    DETERMINISTIC_FALLBACK = "deterministic-fallback"
    UNRESOLVED = "unresolved"


class ResolutionState(str, Enum):
    IDLE = "idle"
    AWAITING_NORMALIZATION = "awaiting-normalization"
    AWAITING_DETERMINISTIC_PARSE = "awaiting-deterministic-parse"
    RESOLVED = "resolved"
    UNRESOLVED = "unresolved"
    CANCELLED = "cancelled"


class InputSource(str, Enum):
    TYPED = "typed"
    CLIPBOARD = "clipboard"
    API = "api"


class ResolvedTimestamp(BaseModel):
    """Outcome of one resolution attempt. Superseded, never mutated."""

    epoch_seconds: Optional[int] = None
    format_index: int = 0
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    method: ResolutionMethod
    message: Optional[str] = None
    normalized_text: Optional[str] = None
    reasoning: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @field_validator("format_index", mode="before")
    @classmethod
    def _clamp_format_index(cls, v: object) -> int:
        return clamp_index(v)

    @property
    def resolved(self) -> bool:
        return self.epoch_seconds is not None and self.method != ResolutionMethod.UNRESOLVED

    @property
    def low_confidence(self) -> bool:
        return self.resolved and self.confidence < LOW_CONFIDENCE_THRESHOLD

    @property
    def markup(self) -> Optional[str]:
        if self.epoch_seconds is None:
            return None
        return render(self.epoch_seconds, self.format_index)


StateCallback = Callable[[ResolutionState], None]


def unresolved(source: InputSource) -> ResolvedTimestamp:
    message = CLIPBOARD_GUIDANCE if source == InputSource.CLIPBOARD else TYPED_GUIDANCE
    return ResolvedTimestamp(method=ResolutionMethod.UNRESOLVED, message=message)


class Resolver:
    def __init__(
        self,
        parser: Optional[DeterministicDateParser] = None,
        normalizer: Optional[IntentNormalizer] = None,
        *,
        raw_fallback_penalty: float = RAW_FALLBACK_PENALTY,
    ) -> None:
        self.parser = parser or DeterministicDateParser()
        self.normalizer = normalizer
        self.raw_fallback_penalty = raw_fallback_penalty

    def detect(self, text: str) -> Optional[ResolvedTimestamp]:
        """Short-circuit for pasted markup; no debounce, no network."""
        existing = detect_existing(text)
        if existing is None:
            return None
        return ResolvedTimestamp(
            epoch_seconds=existing.epoch,
            format_index=existing.format_index,
            confidence=1.0,
            method=ResolutionMethod.EXISTING_MARKUP,
        )

    async def resolve(
        self,
        text: str,
        *,
        tz: str = "UTC",
        now: Optional[datetime] = None,
        histogram: Optional[Mapping[str, int]] = None,
        token: Optional[CancellationToken] = None,
        source: InputSource = InputSource.TYPED,
        on_state: Optional[StateCallback] = None,
    ) -> Optional[ResolvedTimestamp]:
        """Full pipeline. Returns None for empty input (nothing to display)."""
        cleaned = (text or "").strip()
        if not cleaned:
            return None
        existing = self.detect(cleaned)
        if existing is not None:
            return existing
        return await self.resolve_expression(
            cleaned, tz=tz, now=now, histogram=histogram, token=token, source=source, on_state=on_state
        )

    async def resolve_expression(
        self,
        text: str,
        *,
        tz: str = "UTC",
        now: Optional[datetime] = None,
        histogram: Optional[Mapping[str, int]] = None,
        token: Optional[CancellationToken] = None,
        source: InputSource = InputSource.TYPED,
        on_state: Optional[StateCallback] = None,
    ) -> ResolvedTimestamp:
        """Normalizer + deterministic stages for non-empty text without markup.

        Raises ResolutionCancelled when `token` fires between stages.
        """
        reference = now or datetime.now(UTC)
        counts = normalize_histogram(histogram)

        _notify(on_state, ResolutionState.AWAITING_NORMALIZATION)
        normalized = None
        if self.normalizer is not None:
            normalized = await self.normalizer.normalize(text, tz, counts, token, now=reference)
        if token is not None:
            token.raise_if_cancelled()

        _notify(on_state, ResolutionState.AWAITING_DETERMINISTIC_PARSE)

        if normalized is not None:
            epoch = self.parser.parse(normalized.normalized_text, reference, tz)
            if epoch is not None:
                return ResolvedTimestamp(
                    epoch_seconds=epoch,
                    format_index=normalized.suggested_format_index,
                    confidence=normalized.confidence,
                    method=ResolutionMethod.LLM_NORMALIZED,
                    normalized_text=normalized.normalized_text,
                    reasoning=normalized.reasoning or None,
                )

            logger.info("Normalized text %r unparseable; retrying raw input.", normalized.normalized_text)
            epoch = self.parser.parse(text, reference, tz)
            if epoch is not None:
                return ResolvedTimestamp(
                    epoch_seconds=epoch,
                    format_index=normalized.suggested_format_index,
                    confidence=normalized.confidence * self.raw_fallback_penalty,
                    method=ResolutionMethod.LLM_FALLBACK_RAW,
                    normalized_text=normalized.normalized_text,
                    reasoning=normalized.reasoning or None,
                )
            return unresolved(source)

        epoch = self.parser.parse(text, reference, tz)
        if epoch is not None:
            return ResolvedTimestamp(
                epoch_seconds=epoch,
                format_index=most_used_index(counts),
                confidence=DETERMINISTIC_FALLBACK_CONFIDENCE,
                method=ResolutionMethod.DETERMINISTIC_FALLBACK,
            )
        return unresolved(source)


def _notify(callback: Optional[StateCallback], state: ResolutionState) -> None:
    if callback is not None:
        callback(state)
