from __future__ import annotations

from typing import Any, Optional

from pydantic import Field

from core.validators import CamelModel, GroupId


class SessionListResponse(CamelModel):
    items: list[dict[str, Any]]
    total: int


class SessionCreateResponse(CamelModel):
    session: dict[str, Any]
    default_group_id: str


class JoinRequest(CamelModel):
    group_id: Optional[GroupId] = None


class JoinedSessionOut(CamelModel):
    session_id: str
    group_id: str


class MySessionItem(CamelModel):
    session: dict[str, Any]
    group_id: str
    date_display: str


class MySessionsResponse(CamelModel):
    items: list[MySessionItem]
    total: int


class RecordListResponse(CamelModel):
    items: list[dict[str, Any]]
    total: int


class HealthResponse(CamelModel):
    status: str
    app_env: str
    seed_sessions_enabled: bool
    query_stats: dict[str, float] = Field(default_factory=dict)
