"""Schemas for health and usage statistics."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class UsageSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_requests: int = Field(alias="totalRequests", ge=0)
    last24h: int = Field(ge=0)
    by_format: dict[str, int] = Field(alias="byFormat", default_factory=dict)
    format_percentages: dict[str, int] = Field(alias="formatPercentages", default_factory=dict)


class DatabaseHealth(UsageSummary):
    connected: bool
    size_bytes: Optional[int] = Field(alias="sizeBytes", default=None)
    tables: list[str] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: Literal["healthy", "degraded"]
    timestamp: datetime
    version: str
    database: DatabaseHealth
    config: dict[str, Any]


class RecentUsage(BaseModel):
    text: str
    tz: str
    epoch: int
    format: int
    conf: float
    method: str
    ts: datetime


class StatsResponse(BaseModel):
    usage: UsageSummary
    recent: list[RecentUsage] = Field(default_factory=list)
