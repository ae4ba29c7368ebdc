from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Callable

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.observability import (
    configure_logging,
    monotonic_ms,
    new_request_id,
    request_log_fields,
    reset_request_id,
    set_request_id,
)
from api.routes import health_router, router
from core.config import Settings, get_settings
from core.db import dispose_engines
from core.storage import StorageError

logger = logging.getLogger(__name__)


async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Local storage unavailable"})


def _log_request(request: Request, status_code: int, started_ms: float, failed: bool = False) -> None:
    fields = request_log_fields(
        method=request.method,
        path=request.url.path,
        status_code=status_code,
        duration_ms=monotonic_ms() - started_ms,
        client_ip=getattr(request.client, "host", None),
    )
    if failed:
        logger.exception("http_request_error", extra=fields)
    else:
        logger.info("http_request", extra=fields)


def _lifespan(settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "app_started",
            extra={"ctx_app_env": settings.app_env, "ctx_seed_sessions": settings.seed_sessions_enabled},
        )
        try:
            yield
        finally:
            dispose_engines()

    return lifespan


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Group Run Sessions API", version="1.0.0", lifespan=_lifespan(settings))
    app.add_exception_handler(StorageError, storage_error_handler)
    app.include_router(router)
    app.include_router(health_router)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    header_name = settings.request_id_header_name or "X-Request-ID"

    @app.middleware("http")
    async def request_context_and_logging(request: Request, call_next: Callable) -> Response:
        request_id = (request.headers.get(header_name) or "").strip() or new_request_id()
        token = set_request_id(request_id)
        started_ms = monotonic_ms()
        try:
            response = await call_next(request)
        except Exception:
            _log_request(request, 500, started_ms, failed=True)
            raise
        else:
            response.headers[header_name] = request_id
            _log_request(request, response.status_code, started_ms)
            return response
        finally:
            reset_request_id(token)

    return app


app = create_app()
