"""Authentication (static API key).

Design:
- One shared key provisioned out-of-band via TSP_STATIC_API_KEY.
- Clients also pin the contract with `x-api-version: 1`.
- Default deny: with no key configured every request is rejected.
"""

from __future__ import annotations

import hmac
from dataclasses import dataclass

from fastapi import Request, status

from tsparse.api.errors import ApiError, BadRequestError


API_KEY_HEADER = "x-api-key"
API_VERSION_HEADER = "x-api-version"
SUPPORTED_API_VERSION = "1"


class AuthError(ApiError):
    kind = "unauthorized"
    default_status = status.HTTP_401_UNAUTHORIZED


@dataclass(frozen=True, slots=True)
class Principal:
    client_ip: str  # rate-limit key


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",", 1)[0].strip() or "unknown"
    if request.client is not None and request.client.host:
        return request.client.host
    return "unknown"


def get_current_principal(request: Request) -> Principal:
    """Check `x-api-key` then `x-api-version`, returning Principal."""
    expected = request.app.state.settings.static_api_key
    provided = request.headers.get(API_KEY_HEADER) or ""
    if not expected or not provided or not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        raise AuthError("Invalid or missing API key")

    if request.headers.get(API_VERSION_HEADER) != SUPPORTED_API_VERSION:
        raise BadRequestError(f"API version {SUPPORTED_API_VERSION} required")

    return Principal(client_ip=client_ip(request))
