"""Club sessions from the remote API.

Adapts the remote session payload to the local ``Session`` shape so remote
sessions flow through the same filter and ranking pipeline as local ones.
The remote API wraps responses as ``{"ok": true, "data": ...}`` or
``{"ok": false, "error": {"code", "message", "details"}}``.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from core.validators import Session

logger = logging.getLogger(__name__)

DEFAULT_GROUP_PACE_SECONDS = 300
DEFAULT_GROUP_ID = "C"

_OPTIONAL_TEXT_FIELDS = ("meetingPoint", "coachAdvice", "coachPhone", "coachName", "workoutId")


class RemoteApiError(RuntimeError):
    def __init__(self, status_code: int, message: str, code: Optional[str] = None, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.code = code
        self.details = details


def _adapt_groups(payload: dict[str, Any]) -> list[dict[str, Any]]:
    groups = payload.get("paceGroups") or []
    if groups:
        return [
            {
                "id": g["id"],
                "label": g["label"],
                "paceRange": g["paceRange"],
                "runnersCount": g.get("runnersCount") if g.get("runnersCount") is not None else 0,
                "avgPaceSecondsPerKm": g.get("avgPaceSecondsPerKm") or DEFAULT_GROUP_PACE_SECONDS,
            }
            for g in groups
        ]
    group_id = payload.get("recommendedGroupId") or DEFAULT_GROUP_ID
    return [{
        "id": group_id,
        "label": f"Groupe {group_id}",
        "paceRange": payload.get("targetPace", ""),
        "runnersCount": 0,
        "avgPaceSecondsPerKm": DEFAULT_GROUP_PACE_SECONDS,
    }]


def api_session_to_session(payload: dict[str, Any]) -> Session:
    """Remote session payload -> Session. Raises ``ValidationError`` on a malformed payload."""
    record: dict[str, Any] = {
        "id": payload.get("id"),
        "title": payload.get("title"),
        "spot": payload.get("spot"),
        "dateLabel": payload.get("dateLabel"),
        "dateISO": payload.get("dateISO"),
        "timeMinutes": payload.get("timeMinutes"),
        "typeLabel": payload.get("typeLabel"),
        "volume": payload.get("volume"),
        "targetPace": payload.get("targetPace"),
        "estimatedDistanceKm": payload.get("estimatedDistanceKm"),
        "recommendedGroupId": payload.get("recommendedGroupId"),
        "paceGroups": _adapt_groups(payload),
        "isCustom": payload.get("isCustom") if payload.get("isCustom") is not None else True,
        "visibility": payload.get("visibility") or "public",
        "hostGroupName": payload.get("hostGroupName"),
        "genderRestriction": payload.get("genderRestriction"),
        "clubId": payload.get("clubId"),
    }
    for key in _OPTIONAL_TEXT_FIELDS:
        record[key] = payload.get(key)
    return Session.model_validate(record)


def _unwrap(response: httpx.Response) -> Any:
    try:
        payload: Any = response.json()
    except ValueError:
        payload = response.text

    if response.is_error:
        if isinstance(payload, dict):
            error = payload.get("error") if isinstance(payload.get("error"), dict) else payload
            raise RemoteApiError(
                response.status_code,
                error.get("message") or "Request failed",
                error.get("code"),
                error.get("details"),
            )
        raise RemoteApiError(response.status_code, str(payload) or "Request failed")

    if isinstance(payload, dict) and isinstance(payload.get("ok"), bool):
        if not payload["ok"]:
            error = payload.get("error") or {}
            raise RemoteApiError(response.status_code, error.get("message") or "Request failed", error.get("code"), error.get("details"))
        return payload.get("data")
    return payload


class ClubSessionsClient:
    """Thin async client for the club sessions endpoints."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        access_token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"Authorization": f"Bearer {access_token}"} if access_token else {}
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, headers=headers, transport=transport)

    async def __aenter__(self) -> "ClubSessionsClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str) -> Any:
        try:
            response = await self._client.get(path)
        except httpx.HTTPError as exc:
            logger.warning("Remote API request failed: %s %s", path, exc)
            raise RemoteApiError(502, f"Remote API unreachable: {exc}", "upstream_unavailable") from exc
        return _unwrap(response)

    async def get_club_sessions(self, club_id: str) -> list[Session]:
        """Sessions of one club; malformed remote records are skipped."""
        data = await self._get(f"/api/v1/clubs/{club_id}/sessions")
        if isinstance(data, dict):
            raw_sessions = data.get("sessions") or []
        else:
            raw_sessions = data or []
        sessions: list[Session] = []
        for raw in raw_sessions:
            try:
                sessions.append(api_session_to_session(raw))
            except (ValidationError, KeyError, TypeError, AttributeError) as exc:
                logger.warning("Skipping malformed remote session %s: %s", raw.get("id") if isinstance(raw, dict) else raw, exc)
        return sessions

    async def get_session(self, session_id: str) -> Session:
        data = await self._get(f"/api/v1/sessions/{session_id}")
        payload = data.get("session", data) if isinstance(data, dict) else data
        try:
            return api_session_to_session(payload)
        except (ValidationError, KeyError, TypeError, AttributeError) as exc:
            raise RemoteApiError(502, f"Malformed session payload for {session_id}", "bad_payload") from exc
