"""Schemas for the parse endpoint."""

from __future__ import annotations

from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tsparse.resolution.formats import MAX_EPOCH


MAX_TEXT_CHARS = 512

ErrorKind = Literal["bad_request", "unauthorized", "rate_limited", "server_error"]


class ParseRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    text: str = Field(min_length=1, max_length=MAX_TEXT_CHARS)
    tz: str = Field(min_length=1, max_length=64)

    @field_validator("text")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("text must not be blank")
        return v

    @field_validator("tz")
    @classmethod
    def _known_zone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError, OSError) as e:
            raise ValueError(f"unknown time zone: {v}") from e
        return v


class ParseResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    epoch: int = Field(ge=1, le=MAX_EPOCH)
    suggested_format_index: int = Field(alias="suggestedFormatIndex", ge=0, le=6)
    confidence: float = Field(ge=0.0, le=1.0)
    method: str


class ErrorResponse(BaseModel):
    error: ErrorKind
    message: str
