"""Desktop-side access to the hosted Time-Parse API.

The desktop shell never holds a provider credential; it talks to the HTTP
service and, when that is unreachable or cannot answer, falls back to the
in-process deterministic pipeline.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Mapping, Optional

import httpx

from tsparse.core.errors import ResolutionCancelled, TsparseError
from tsparse.resolution.cancellation import CancellationToken
from tsparse.resolution.formats import FORMATS, MAX_EPOCH
from tsparse.resolution.orchestrator import (
    InputSource,
    ResolutionMethod,
    ResolutionState,
    ResolvedTimestamp,
    Resolver,
    StateCallback,
)
from tsparse.resolution.preferences import most_used_index

logger = logging.getLogger(__name__)

API_VERSION = "1"
API_KEY_HEADER = "x-api-key"
API_VERSION_HEADER = "x-api-version"


class ParseServiceError(TsparseError):
    """Non-success answer or unusable payload from the Time-Parse API."""

    def __init__(self, kind: str, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(f"{kind}: {message}")
        self.kind = kind
        self.message = message
        self.status_code = status_code


def _validate_payload(data: Any) -> ResolvedTimestamp:
    if not isinstance(data, dict):
        raise ParseServiceError("server_error", "Invalid API response format")
    epoch = data.get("epoch")
    index = data.get("suggestedFormatIndex")
    confidence = data.get("confidence")
    method = data.get("method")
    if (
        isinstance(epoch, bool)
        or not isinstance(epoch, int)
        or not 1 <= epoch <= MAX_EPOCH
        or isinstance(index, bool)
        or not isinstance(index, int)
        or not 0 <= index < len(FORMATS)
        or isinstance(confidence, bool)
        or not isinstance(confidence, (int, float))
        or not 0.0 <= confidence <= 1.0
        or not isinstance(method, str)
    ):
        raise ParseServiceError("server_error", "Invalid API response format")
    try:
        resolved_method = ResolutionMethod(method)
    except ValueError as e:
        raise ParseServiceError("server_error", f"Unknown resolution method: {method}") from e
    return ResolvedTimestamp(
        epoch_seconds=epoch,
        format_index=index,
        confidence=float(confidence),
        method=resolved_method,
    )


class ParseServiceClient:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout_seconds: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._api_key = api_key
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)

    async def parse(self, text: str, tz: str, token: Optional[CancellationToken] = None) -> ResolvedTimestamp:
        """POST /parse. Raises ParseServiceError, httpx.HTTPError, TimeoutError or ResolutionCancelled."""
        token = token or CancellationToken()
        response = await token.run(
            self._client.post(
                f"{self.base_url}/parse",
                json={"text": text, "tz": tz},
                headers={API_KEY_HEADER: self._api_key, API_VERSION_HEADER: API_VERSION},
            ),
            timeout=self.timeout_seconds,
        )
        if response.status_code != 200:
            try:
                body = response.json()
            except ValueError:
                body = {}
            if not isinstance(body, dict):
                body = {}
            raise ParseServiceError(
                str(body.get("error") or "server_error"),
                str(body.get("message") or f"API error: {response.status_code}"),
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except ValueError as e:
            raise ParseServiceError("server_error", "Invalid API response format") from e
        return _validate_payload(data)

    async def health_check(self) -> bool:
        try:
            response = await self._client.get(f"{self.base_url}/health")
        except httpx.HTTPError:
            return False
        return response.status_code == 200

    async def aclose(self) -> None:
        await self._client.aclose()


class RemoteResolver:
    """Hosted pipeline first, in-process deterministic pipeline as fallback."""

    def __init__(self, client: ParseServiceClient, local: Optional[Resolver] = None) -> None:
        self._client = client
        self._local = local or Resolver()

    def detect(self, text: str) -> Optional[ResolvedTimestamp]:
        return self._local.detect(text)

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
        if on_state is not None:
            on_state(ResolutionState.AWAITING_NORMALIZATION)
        try:
            result = await self._client.parse(text, tz, token)
        except ResolutionCancelled:
            raise
        except (ParseServiceError, httpx.HTTPError, asyncio.TimeoutError) as e:
            logger.info("Time-Parse API unavailable (%s); parsing locally.", e)
            result = None

        if token is not None:
            token.raise_if_cancelled()
        if result is not None:
            if result.method == ResolutionMethod.DETERMINISTIC_FALLBACK and histogram:
                # Server-side picks ignore local choices.
                result = result.model_copy(update={"format_index": most_used_index(histogram)})
            return result
        return await self._local.resolve_expression(
            text, tz=tz, now=now, histogram=histogram, token=token, source=source, on_state=on_state
        )
