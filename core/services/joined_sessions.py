from __future__ import annotations

import logging
from typing import Optional

from core.storage import JsonArrayStore
from core.validators import JoinedSession

logger = logging.getLogger(__name__)

JOINED_SESSIONS_STORAGE_KEY = "joinedSessions:v1"


class JoinedSessionStore(JsonArrayStore[JoinedSession]):
    """The runner's joined sessions, at most one group per session."""

    storage_key = JOINED_SESSIONS_STORAGE_KEY
    record_model = JoinedSession

    async def get_all(self) -> list[JoinedSession]:
        return await self.load()

    async def get(self, session_id: str) -> Optional[JoinedSession]:
        for joined in await self.load():
            if joined.session_id == session_id:
                return joined
        return None

    async def upsert(self, session_id: str, group_id: str) -> JoinedSession:
        """Join ``session_id`` in ``group_id``, replacing any previous group choice."""
        entry = JoinedSession(session_id=session_id, group_id=group_id)
        entries = await self.load()
        for i, joined in enumerate(entries):
            if joined.session_id == session_id:
                entries[i] = entry
                break
        else:
            entries.append(entry)
        await self.save(entries)
        logger.info("Joined session %s in group %s", session_id, group_id)
        return entry

    async def remove(self, session_id: str) -> None:
        entries = await self.load()
        remaining = [j for j in entries if j.session_id != session_id]
        if len(remaining) != len(entries):
            await self.save(remaining)
            logger.info("Left session %s", session_id)
