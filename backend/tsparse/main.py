"""FastAPI application (Time-Parse API).

Operational goals:
- One pipeline shared with the desktop client, one call per request
- Static-key authentication and per-client rate limiting
- Request-id propagation and structured access logs
- Uniform `{"error", "message"}` failures
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from tsparse import __version__
from tsparse.api.errors import ApiError, kind_for_status
from tsparse.api.router import router as api_router
from tsparse.core.config import Settings, get_settings
from tsparse.core.db import create_session_factory
from tsparse.security.rate_limit import build_rate_limiter
from tsparse.services.parse_service import ParseService, build_parse_service
import tsparse.models as _models  # noqa: F401  (register all ORM models deterministically)


logger = logging.getLogger("tsparse")
# Access logs are emitted by default.
logger.setLevel(logging.INFO)


def _error(status_code: int, kind: str, message: str, headers: Optional[dict[str, str]] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": kind, "message": message}, headers=headers)


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request body."
    first = errors[0]
    loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    msg = str(first.get("msg", "invalid value"))
    return f"{loc}: {msg}" if loc else msg


def create_app(settings: Optional[Settings] = None, *, parse_service: Optional[ParseService] = None) -> FastAPI:
    settings = settings or get_settings()
    service = parse_service or build_parse_service(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await service.aclose()

    app = FastAPI(
        title="Time-Parse API",
        version=__version__,
        openapi_url="/openapi.json",
        docs_url=None,
        redoc_url=None,
        description="Natural-language time expressions to Discord timestamp markup.",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.session_factory = create_session_factory(settings.database_url)
    app.state.parse_service = service
    app.state.limiter = build_rate_limiter(settings)

    if not settings.static_api_key:
        logger.warning("TSP_STATIC_API_KEY is not set; every authenticated request will be rejected.")

    app.include_router(api_router)

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
        return _error(exc.status_code, exc.kind, exc.message, exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error(400, "bad_request", _validation_message(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error(exc.status_code, kind_for_status(exc.status_code), str(exc.detail), getattr(exc, "headers", None))

    @app.middleware("http")
    async def request_id_and_access_log(request: Request, call_next: Callable):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        start = time.time()
        try:
            response = await call_next(request)
        except OperationalError:
            return _error(503, "server_error", "Service temporarily unavailable.", {"x-request-id": request_id})
        except Exception:  # noqa: BLE001
            logger.exception("Unhandled error", extra={"request_id": request_id})
            return _error(500, "server_error", "Internal server error.", {"x-request-id": request_id})

        duration_ms = int((time.time() - start) * 1000)
        response.headers["x-request-id"] = request_id

        # Structured access log (no request bodies, no keys).
        logger.info(
            json.dumps(
                {
                    "event": "access",
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": getattr(response, "status_code", None),
                    "duration_ms": duration_ms,
                }
            )
        )
        return response

    return app


app = create_app()
