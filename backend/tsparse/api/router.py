"""API root router."""

from __future__ import annotations

from fastapi import APIRouter

from tsparse.api.v1.health import router as health_router
from tsparse.api.v1.parse import router as parse_router
from tsparse.api.v1.stats import router as stats_router


router = APIRouter()
router.include_router(parse_router, tags=["parse"])
router.include_router(health_router, tags=["health"])
router.include_router(stats_router, tags=["stats"])
