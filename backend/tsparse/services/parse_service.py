"""Service logic for the parse endpoint."""
import logging
from datetime import datetime
from typing import Optional

from tsparse.core.config import Settings
from tsparse.core.errors import StorageError
from tsparse.repositories.usage_repo import UsageRepository
from tsparse.resolution.date_parser import DeterministicDateParser
from tsparse.resolution.normalizer import build_normalizer
from tsparse.resolution.orchestrator import InputSource, ResolvedTimestamp, Resolver, unresolved

logger = logging.getLogger(__name__)


class ParseService:
    """One `/parse` call: the shared pipeline, then a usage row.

    The usage log records suggested formats, not confirmed choices, so it never
    feeds the preference histogram; ties resolve to the lowest index.
    """

    def __init__(self, resolver: Resolver) -> None:
        self.resolver = resolver

    async def parse(
        self,
        text: str,
        tz: str,
        *,
        usage: Optional[UsageRepository] = None,
        client_ip: str = "unknown",
        now: Optional[datetime] = None,
    ) -> ResolvedTimestamp:
        result = await self.resolver.resolve(text, tz=tz, now=now, source=InputSource.API)
        if result is None:
            result = unresolved(InputSource.API)

        if result.resolved and usage is not None:
            try:
                usage.log_usage(
                    text=text,
                    tz=tz,
                    epoch=result.epoch_seconds or 0,
                    format_index=result.format_index,
                    confidence=result.confidence,
                    method=result.method.value,
                    ip=client_ip,
                )
            except StorageError as e:
                logger.warning("Usage log write failed: %s", e)
        return result

    async def aclose(self) -> None:
        normalizer = self.resolver.normalizer
        if normalizer is not None and hasattr(normalizer, "aclose"):
            await normalizer.aclose()


def build_parse_service(settings: Settings) -> ParseService:
    return ParseService(Resolver(DeterministicDateParser(), build_normalizer(settings)))
