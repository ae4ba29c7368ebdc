from __future__ import annotations

import logging
from datetime import date
from typing import Annotated, Any, Callable, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Response, status
from pydantic import ValidationError

from api.deps import get_app_settings, get_catalog, get_clock, get_remote_client
from api.schemas import (
    HealthResponse,
    JoinedSessionOut,
    JoinRequest,
    MySessionItem,
    MySessionsResponse,
    RecordListResponse,
    SessionCreateResponse,
    SessionListResponse,
)
from core.config import Settings
from core.db import get_query_stats
from core.services.date_helpers import format_date_for_list
from core.services.discovery import JoinNotAllowedError, SessionCatalog, SessionNotFoundError
from core.services.profile_store import InvalidRecordError
from core.services.remote_sessions import ClubSessionsClient, RemoteApiError
from core.services.session_store import InvalidSessionError
from core.validators import CustomDateRange, FilterState, PaceRange, ReferencePaces, RunnerProfile, SessionFormInput

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1")
health_router = APIRouter()

Catalog = Annotated[SessionCatalog, Depends(get_catalog)]


def _validation_detail(exc: ValidationError) -> list[str]:
    return [f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" if e["loc"] else e["msg"] for e in exc.errors()]


def get_filters(
    date_bucket: Optional[str] = Query(None, alias="date"),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    run_type: Optional[str] = Query(None, alias="type"),
    pace_min: Optional[float] = None,
    pace_max: Optional[float] = None,
    spot: Optional[str] = None,
    gender_restriction: Optional[str] = None,
    walking_only: bool = False,
) -> FilterState:
    """Discovery filters from query parameters; a range needs both of its bounds."""
    try:
        return FilterState(
            date=date_bucket,
            custom_date_range=CustomDateRange(start_date=start_date, end_date=end_date) if start_date and end_date else None,
            type=run_type,
            pace_range=PaceRange(min_seconds_per_km=pace_min, max_seconds_per_km=pace_max)
            if pace_min is not None and pace_max is not None else None,
            spot=spot,
            gender_restriction=gender_restriction,
            walking_only=walking_only,
        )
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=_validation_detail(exc))


# --- Sessions ---


@router.get("/sessions", response_model=SessionListResponse, tags=["sessions"])
async def list_sessions(catalog: Catalog, filters: Annotated[FilterState, Depends(get_filters)]):
    sessions = await catalog.discover(filters)
    return SessionListResponse(items=[s.to_record() for s in sessions], total=len(sessions))


@router.get("/sessions/{session_id}", tags=["sessions"])
async def get_session(session_id: str, catalog: Catalog) -> dict[str, Any]:
    session = await catalog.get_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session.to_record()


@router.post("/sessions", response_model=SessionCreateResponse, status_code=201, tags=["sessions"])
async def create_session(body: SessionFormInput, catalog: Catalog):
    try:
        built = await catalog.create_and_join(body)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return SessionCreateResponse(session=built.session.to_record(), default_group_id=built.default_group_id)


@router.patch("/sessions/{session_id}", tags=["sessions"])
async def update_session(session_id: str, catalog: Catalog, patch: Annotated[dict[str, Any], Body()]) -> dict[str, Any]:
    try:
        updated = await catalog.update(session_id, patch)
    except InvalidSessionError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    if updated is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return updated.to_record()


@router.delete("/sessions/{session_id}", status_code=204, tags=["sessions"])
async def delete_session(session_id: str, catalog: Catalog):
    if not await catalog.delete(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return Response(status_code=204)


@router.post("/sessions/{session_id}/join", response_model=JoinedSessionOut, tags=["sessions"])
async def join_session(session_id: str, catalog: Catalog, body: Optional[JoinRequest] = None):
    try:
        joined = await catalog.join(session_id, body.group_id if body else None)
    except SessionNotFoundError:
        raise HTTPException(status_code=404, detail="Session not found")
    except JoinNotAllowedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return JoinedSessionOut(session_id=joined.session_id, group_id=joined.group_id)


@router.delete("/sessions/{session_id}/join", status_code=204, tags=["sessions"])
async def leave_session(session_id: str, catalog: Catalog):
    await catalog.leave(session_id)
    return Response(status_code=204)


# --- Current runner ---


@router.get("/me/sessions", response_model=MySessionsResponse, tags=["me"])
async def my_sessions(catalog: Catalog, clock: Annotated[Callable, Depends(get_clock)]):
    now = clock()
    pairs = await catalog.my_sessions(now)
    items = [
        MySessionItem(session=s.to_record(), group_id=j.group_id, date_display=format_date_for_list(s.date_iso, now))
        for s, j in pairs
    ]
    return MySessionsResponse(items=items, total=len(items))


@router.get("/me/paces", response_model=ReferencePaces, response_model_exclude_none=True, tags=["me"])
async def get_paces(catalog: Catalog):
    return await catalog.profiles.get_reference_paces() or ReferencePaces()


@router.put("/me/paces", response_model=ReferencePaces, response_model_exclude_none=True, tags=["me"])
async def put_paces(body: ReferencePaces, catalog: Catalog):
    await catalog.profiles.save_reference_paces(body)
    return body


@router.get("/me/profile", response_model=RunnerProfile, response_model_exclude_none=True, tags=["me"])
async def get_profile(catalog: Catalog):
    profile = await catalog.profiles.get_profile()
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not set")
    return profile


@router.put("/me/profile", response_model=RunnerProfile, response_model_exclude_none=True, tags=["me"])
async def put_profile(body: RunnerProfile, catalog: Catalog):
    await catalog.profiles.save_profile(body)
    return body


@router.get("/me/records", response_model=RecordListResponse, tags=["me"])
async def list_records(catalog: Catalog, history: bool = False):
    if history:
        records = await catalog.profiles.get_all_test_records()
    else:
        records = await catalog.profiles.get_test_records()
    return RecordListResponse(items=[r.to_record() for r in records], total=len(records))


@router.post("/me/records", status_code=201, tags=["me"])
async def create_record(catalog: Catalog, body: Annotated[dict[str, Any], Body()]) -> dict[str, Any]:
    try:
        record = await catalog.profiles.save_test_record(body)
    except InvalidRecordError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return record.to_record()


@router.delete("/me/records/{record_id}", status_code=204, tags=["me"])
async def delete_record(record_id: str, catalog: Catalog):
    await catalog.profiles.delete_test_record(record_id)
    return Response(status_code=204)


# --- Clubs (remote) ---


@router.get("/clubs/{club_id}/sessions", response_model=SessionListResponse, tags=["clubs"])
async def club_sessions(
    club_id: str,
    catalog: Catalog,
    client: Annotated[ClubSessionsClient, Depends(get_remote_client)],
    filters: Annotated[FilterState, Depends(get_filters)],
):
    try:
        remote = await client.get_club_sessions(club_id)
    except RemoteApiError as exc:
        logger.warning("Club sessions fetch failed for %s: %s (%s)", club_id, exc.message, exc.status_code)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.message)
    ranked = await catalog.rank_for_runner(remote, filters)
    return SessionListResponse(items=[s.to_record() for s in ranked], total=len(ranked))


# --- Health ---


@health_router.get("/health", response_model=HealthResponse, tags=["health"])
def health(settings: Annotated[Settings, Depends(get_app_settings)]):
    stats = get_query_stats()
    return HealthResponse(
        status="ok",
        app_env=settings.app_env,
        seed_sessions_enabled=settings.seed_sessions_enabled,
        query_stats={"total": stats.total, "slow": stats.slow, "p50Ms": stats.p50_ms, "p95Ms": stats.p95_ms},
    )
