"""Durable store for user-authored sessions under ``sessions:v1``.

Records migrate forward on read: missing ``dateISO``/``timeMinutes`` are
backfilled from ``dateLabel`` and legacy ``groupOverrides`` become
``paceGroupsOverride``. Migrated arrays are re-persisted in the background;
the caller never waits on that write.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Optional

from pydantic import ValidationError

from core.services.date_helpers import parse_label
from core.storage import JsonArrayStore
from core.validators import Session, SessionGroupOverride

logger = logging.getLogger(__name__)

SESSIONS_STORAGE_KEY = "sessions:v1"


class InvalidSessionError(ValueError):
    """Session payload failed validation; the store is left unchanged."""


def migrate_session(session: Session, now: Optional[datetime] = None) -> tuple[Session, bool]:
    """Forward-migrate one record. Returns ``(session, changed)``; idempotent."""
    changes: dict[str, Any] = {}

    if not session.date_iso and session.date_label:
        parsed = parse_label(session.date_label, now)
        if parsed is not None:
            changes["date_iso"] = parsed.date_iso
            changes["time_minutes"] = parsed.time_minutes

    if session.group_overrides and not session.pace_groups_override:
        changes["pace_groups_override"] = [
            SessionGroupOverride(
                id=legacy.group_id,
                is_active=True,
                pace_seconds_per_km=legacy.pace_seconds_per_km,
                reps=legacy.repetitions,
                effort_duration_seconds=legacy.effort_seconds,
                recovery_duration_seconds=legacy.recovery_seconds,
            )
            for legacy in session.group_overrides
        ]
        changes["group_overrides"] = None

    if not changes:
        return session, False
    return session.model_copy(update=changes), True


class SessionStore(JsonArrayStore[Session]):
    storage_key = SESSIONS_STORAGE_KEY
    record_model = Session

    def __init__(self, storage, clock: Optional[Callable[[], datetime]] = None):
        super().__init__(storage)
        self.clock = clock or datetime.now

    async def _load_migrated(self) -> tuple[list[Session], bool]:
        now = self.clock()
        migrated_any = False
        result: list[Session] = []
        for session in await self.load():
            session, changed = migrate_session(session, now)
            migrated_any = migrated_any or changed
            result.append(session)
        return result, migrated_any

    async def get_all(self) -> list[Session]:
        """Stored sessions, migrated; migrated records are re-persisted in the background."""
        result, migrated_any = await self._load_migrated()
        if migrated_any:
            logger.info("Migrated stored sessions, re-persisting %d records", len(result))
            self.save_in_background(result)
        return result

    async def get(self, session_id: str) -> Optional[Session]:
        for session in await self.get_all():
            if session.id == session_id:
                return session
        return None

    async def create(self, session: Session | dict[str, Any]) -> Session:
        """Validate and append; the stored record is always user-authored."""
        payload = session.to_record() if isinstance(session, Session) else dict(session)
        payload["isCustom"] = True
        record = _validate(payload)

        sessions, _ = await self._load_migrated()
        sessions.append(record)
        await self.save(sessions)
        logger.info("Created session %s", record.id)
        return record

    async def update(self, session_id: str, patch: dict[str, Any]) -> Optional[Session]:
        """Merge ``patch`` (camelCase or snake_case keys) into a stored session.

        ``id`` and ``isCustom`` always keep their stored values. Returns None
        when the id is unknown.
        """
        sessions, _ = await self._load_migrated()
        index = next((i for i, s in enumerate(sessions) if s.id == session_id), None)
        if index is None:
            logger.warning("Session %s not found for update", session_id)
            return None

        existing = sessions[index]
        merged = {**existing.to_record(), **_camel_keys(patch)}
        merged["id"] = existing.id
        if existing.is_custom is None:
            merged.pop("isCustom", None)
        else:
            merged["isCustom"] = existing.is_custom

        record = _validate(merged)
        sessions[index] = record
        await self.save(sessions)
        logger.info("Updated session %s", session_id)
        return record

    async def remove(self, session_id: str) -> None:
        sessions, _ = await self._load_migrated()
        remaining = [s for s in sessions if s.id != session_id]
        if len(remaining) == len(sessions):
            return
        await self.save(remaining)
        logger.info("Removed session %s", session_id)


def _validate(payload: dict[str, Any]) -> Session:
    try:
        return Session.model_validate(payload)
    except ValidationError as exc:
        raise InvalidSessionError(f"Invalid session data: {exc.error_count()} error(s)") from exc


def _camel_keys(patch: dict[str, Any]) -> dict[str, Any]:
    """Normalise snake_case field names to the stored camelCase aliases."""
    out: dict[str, Any] = {}
    for key, value in patch.items():
        field = Session.model_fields.get(key)
        out[field.alias if field is not None and field.alias else key] = value
    return out
