"""Parse endpoint.

Authentication and rate limiting run as router dependencies, so a bad key is
rejected before the body is validated or any parsing happens.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from tsparse.api.deps import enforce_rate_limit, get_parse_service, get_usage_repository
from tsparse.api.errors import BadRequestError
from tsparse.repositories.usage_repo import UsageRepository
from tsparse.resolution.orchestrator import TYPED_GUIDANCE
from tsparse.schemas.parse import ErrorResponse, ParseRequest, ParseResponse
from tsparse.security.auth import Principal
from tsparse.services.parse_service import ParseService


router = APIRouter(
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)


@router.post("/parse", response_model=ParseResponse, response_model_by_alias=True)
async def parse_time(
    body: ParseRequest,
    principal: Principal = Depends(enforce_rate_limit),
    service: ParseService = Depends(get_parse_service),
    usage: UsageRepository = Depends(get_usage_repository),
) -> ParseResponse:
    result = await service.parse(body.text, body.tz, usage=usage, client_ip=principal.client_ip)
    if not result.resolved or result.epoch_seconds is None:
        raise BadRequestError(result.message or TYPED_GUIDANCE)
    return ParseResponse(
        epoch=result.epoch_seconds,
        suggested_format_index=result.format_index,
        confidence=result.confidence,
        method=result.method.value,
    )
