from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime
from functools import lru_cache
from typing import Annotated, Callable

from fastapi import Depends, HTTPException, status

from core.config import Settings, get_settings
from core.services.discovery import SessionCatalog
from core.services.remote_sessions import ClubSessionsClient
from core.storage import KeyValueStorage, SqlKeyValueStorage


@lru_cache(maxsize=4)
def _sql_storage(url: str) -> SqlKeyValueStorage:
    return SqlKeyValueStorage(url)


def get_app_settings() -> Settings:
    return get_settings()


def get_storage(settings: Annotated[Settings, Depends(get_app_settings)]) -> KeyValueStorage:
    return _sql_storage(settings.database_url)


def get_clock() -> Callable[[], datetime]:
    return datetime.now


def get_catalog(
    storage: Annotated[KeyValueStorage, Depends(get_storage)],
    clock: Annotated[Callable[[], datetime], Depends(get_clock)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> SessionCatalog:
    return SessionCatalog(storage, clock=clock, include_seeds=settings.seed_sessions_enabled)


async def get_remote_client(
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> AsyncGenerator[ClubSessionsClient, None]:
    if not settings.remote_api_url:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Remote API is not configured")
    client = ClubSessionsClient(settings.remote_api_url, timeout=settings.remote_api_timeout_seconds)
    try:
        yield client
    finally:
        await client.aclose()
