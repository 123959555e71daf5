"""API error types.

Every failure leaves the service as `{"error": <kind>, "message": <text>}`;
`kind` is one of bad_request, unauthorized, rate_limited, server_error.
"""

from __future__ import annotations

from typing import Optional

from fastapi import HTTPException, status


class ApiError(HTTPException):
    kind = "server_error"
    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, *, status_code: Optional[int] = None, headers: Optional[dict[str, str]] = None) -> None:
        super().__init__(status_code=status_code or self.default_status, detail=message, headers=headers)
        self.message = message

    def body(self) -> dict[str, str]:
        return {"error": self.kind, "message": self.message}


class BadRequestError(ApiError):
    kind = "bad_request"
    default_status = status.HTTP_400_BAD_REQUEST


class ServerError(ApiError):
    pass


def kind_for_status(status_code: int) -> str:
    if status_code == status.HTTP_401_UNAUTHORIZED:
        return "unauthorized"
    if status_code == status.HTTP_429_TOO_MANY_REQUESTS:
        return "rate_limited"
    if 400 <= status_code < 500:
        return "bad_request"
    return "server_error"
