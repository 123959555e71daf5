"""Usage statistics endpoint (authenticated)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from tsparse.api.deps import enforce_rate_limit, get_usage_repository
from tsparse.api.errors import ServerError
from tsparse.core.errors import StorageError
from tsparse.repositories.usage_repo import UsageRepository
from tsparse.resolution.formats import CODES
from tsparse.resolution.preferences import as_percentages
from tsparse.schemas.health import RecentUsage, StatsResponse, UsageSummary


RECENT_LIMIT = 5

router = APIRouter(dependencies=[Depends(enforce_rate_limit)])


@router.get("/stats", response_model=StatsResponse, response_model_by_alias=True)
async def stats(usage: UsageRepository = Depends(get_usage_repository)) -> StatsResponse:
    try:
        summary = usage.usage_stats()
        recent = usage.recent_usage(limit=RECENT_LIMIT)
    except StorageError as e:
        raise ServerError("Usage statistics unavailable.", status_code=status.HTTP_503_SERVICE_UNAVAILABLE) from e

    by_code = {CODES[i]: n for i, n in summary.by_format.items() if 0 <= i < len(CODES)}
    return StatsResponse(
        usage=UsageSummary(
            total_requests=summary.total,
            last24h=summary.last24h,
            by_format=by_code,
            format_percentages=as_percentages(by_code),
        ),
        recent=[
            RecentUsage(text=r.text, tz=r.tz, epoch=r.epoch, format=r.format, conf=r.conf, method=r.method, ts=r.ts)
            for r in recent
        ],
    )
