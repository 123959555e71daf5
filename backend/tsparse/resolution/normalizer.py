"""Intent normalizer backed by a hosted language model.

The model never computes timestamps. It rewrites the user's text into an
unambiguous phrase (adding AM/PM, an implied year, expanding holidays) that
the deterministic parser can consume, and picks a display format.

Every failure mode (no provider, timeout, transport error, malformed JSON,
out-of-range fields, cancellation) returns None; the caller always has a
deterministic fallback.
"""

from __future__ import annotations

import asyncio
import json
import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import google.generativeai as genai
import httpx

from tsparse.core.config import Settings
from tsparse.core.errors import NormalizerError, ResolutionCancelled
from tsparse.resolution.cancellation import CancellationToken
from tsparse.resolution.formats import FORMATS

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 3.0
MAX_TOKENS = 200


@dataclass(frozen=True)
class NormalizationResult:
    normalized_text: str
    suggested_format_index: int
    confidence: float
    reasoning: str = ""


class IntentNormalizer(Protocol):
    async def normalize(
        self,
        text: str,
        tz: str,
        histogram: Mapping[str, int],
        token: Optional[CancellationToken] = None,
        *,
        now: Optional[datetime] = None,
    ) -> Optional[NormalizationResult]: ...


def _format_rules() -> str:
    lines = [f"{i}: {f.code} ({f.label} - {f.description_example})" for i, f in enumerate(FORMATS)]
    return "\n".join(lines)


SYSTEM_PROMPT = f"""You rewrite natural-language time expressions so that a deterministic date parser can read them.
You never compute timestamps yourself.

Tasks:
1. Add missing context: AM/PM when a clock time is ambiguous, the year when it is implied, an explicit date for holidays or nicknames ("Xmas" -> "December 25").
2. Rewrite the expression into a plain, unambiguous phrase such as "January 16, 2025 at 2:00 PM", "Friday at 9:00 AM" or "in 3 hours".
   Name weekdays without "next" or "this"; the parser always reads a weekday as the upcoming one.
3. Pick the display format index:
{_format_rules()}
   - date only -> 0 or 1
   - time only -> 2 or 3
   - date and time -> 4 or 5
   - explicitly relative ("in N units", "N units ago") -> 6
   When several fit, prefer the one the user picks most often (FORMAT_USAGE).
4. Report your confidence from 0 to 1 (0.9+ clear, 0.5-0.8 ambiguous, below 0.5 unclear).

Respond with JSON only:
{{"normalizedText": "...", "suggestedFormatIndex": 4, "confidence": 0.9, "reasoning": "one short sentence"}}"""


def build_user_prompt(text: str, tz: str, histogram: Mapping[str, int], now: datetime) -> str:
    try:
        local = now.astimezone(ZoneInfo(tz))
    except (ZoneInfoNotFoundError, ValueError, OSError):
        local = now.astimezone(timezone.utc)
    usage = {f.code: int(histogram.get(f.code, 0) or 0) for f in FORMATS}
    return (
        f'TEXT: "{text}"\n'
        f'TIMEZONE: "{tz}"\n'
        f'CURRENT_TIME: "{local.isoformat(timespec="seconds")}"\n'
        f'CURRENT_WEEKDAY: "{local.strftime("%A")}"\n'
        f"FORMAT_USAGE: {json.dumps(usage, sort_keys=True)}\n"
        "Return the JSON object."
    )


def _extract_json(raw: str) -> dict[str, Any]:
    fenced = re.search(r"```(?:json)?\s*(\{.*?\})\s*```", raw, re.DOTALL)
    if fenced:
        body = fenced.group(1)
    else:
        bare = re.search(r"\{.*\}", raw, re.DOTALL)
        if not bare:
            raise NormalizerError("No JSON object in model response.")
        body = bare.group(0)
    try:
        data = json.loads(body)
    except json.JSONDecodeError as e:
        raise NormalizerError(f"Malformed JSON in model response: {e}") from e
    if not isinstance(data, dict):
        raise NormalizerError("Model response is not a JSON object.")
    return data


def parse_normalization(raw: str) -> NormalizationResult:
    """Strictly validate a model response. Any violation rejects the whole payload."""
    data = _extract_json(raw or "")

    text = data.get("normalizedText")
    if not isinstance(text, str) or not text.strip():
        raise NormalizerError("normalizedText must be a non-empty string.")

    index = data.get("suggestedFormatIndex")
    if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(FORMATS):
        raise NormalizerError(f"suggestedFormatIndex out of range: {index!r}")

    confidence = data.get("confidence")
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        raise NormalizerError(f"confidence must be a number: {confidence!r}")
    if math.isnan(confidence) or not 0.0 <= confidence <= 1.0:
        raise NormalizerError(f"confidence out of range: {confidence!r}")

    reasoning = data.get("reasoning") or ""
    if not isinstance(reasoning, str):
        reasoning = str(reasoning)

    return NormalizationResult(
        normalized_text=text.strip(),
        suggested_format_index=index,
        confidence=float(confidence),
        reasoning=reasoning.strip(),
    )


class LLMIntentNormalizer:
    """Normalizer for OpenAI-compatible chat completion APIs or Gemini."""

    def __init__(
        self,
        *,
        api_key: str,
        provider: str = "openai",
        model: Optional[str] = None,
        base_url: str = "https://api.openai.com/v1",
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if provider not in ("openai", "gemini"):
            raise ValueError(f"Unsupported provider: {provider}")
        if not api_key:
            raise ValueError("API key is required for this provider.")

        self.provider = provider
        self.model_name = model or ("gemini-1.5-flash" if provider == "gemini" else "gpt-4o-mini")
        self.timeout_seconds = timeout_seconds
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self._gemini_model: Any = None

        if provider == "gemini":
            genai.configure(api_key=api_key)
            self._gemini_model = genai.GenerativeModel(
                self.model_name,
                system_instruction=SYSTEM_PROMPT,
                generation_config={"temperature": 0, "response_mime_type": "application/json"},
            )

        logger.info("Initialized %s normalizer with model: %s", self.provider, self.model_name)

    async def normalize(
        self,
        text: str,
        tz: str,
        histogram: Mapping[str, int],
        token: Optional[CancellationToken] = None,
        *,
        now: Optional[datetime] = None,
    ) -> Optional[NormalizationResult]:
        token = token or CancellationToken()
        if token.cancelled:
            return None

        prompt = build_user_prompt(text, tz, histogram, now or datetime.now(timezone.utc))
        try:
            raw = await token.run(self._complete(prompt), timeout=self.timeout_seconds)
            result = parse_normalization(raw)
        except ResolutionCancelled:
            logger.debug("Normalization superseded; dropping.")
            return None
        except asyncio.TimeoutError:
            logger.info("Normalization timed out after %.1fs", self.timeout_seconds)
            return None
        except (NormalizerError, httpx.HTTPError) as e:
            logger.warning("Normalization failed: %s", e)
            return None

        if token.cancelled:
            return None
        return result

    async def _complete(self, prompt: str) -> str:
        if self.provider == "gemini":
            return await self._complete_gemini(prompt)
        return await self._complete_openai(prompt)

    async def _complete_openai(self, prompt: str) -> str:
        payload = {
            "model": self.model_name,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": MAX_TOKENS,
            "temperature": 0,
            "response_format": {"type": "json_object"},
        }
        response = await self._client.post(
            f"{self._base_url}/chat/completions",
            json=payload,
            headers={"Authorization": f"Bearer {self._api_key}"},
        )
        response.raise_for_status()
        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise NormalizerError("Unexpected chat completion payload.") from e
        if not isinstance(content, str) or not content.strip():
            raise NormalizerError("Empty chat completion content.")
        return content

    async def _complete_gemini(self, prompt: str) -> str:
        try:
            response = await self._gemini_model.generate_content_async(prompt)
            content = response.text
        except Exception as e:  # noqa: BLE001
            raise NormalizerError(f"Gemini request failed: {e}") from e
        if not content:
            raise NormalizerError("Gemini returned empty response.")
        return content

    async def aclose(self) -> None:
        await self._client.aclose()


def build_normalizer(settings: Settings) -> Optional[LLMIntentNormalizer]:
    """Normalizer for the configured provider, or None for deterministic-only mode."""
    if not settings.normalizer_enabled:
        logger.info("No language-model provider configured; deterministic parsing only.")
        return None
    return LLMIntentNormalizer(
        api_key=settings.llm_api_key or "",
        provider=settings.llm_provider,
        model=settings.llm_model,
        base_url=settings.llm_base_url,
        timeout_seconds=settings.llm_timeout_seconds,
    )
