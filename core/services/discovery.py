"""Session catalog: the seeds and the user's stored sessions seen as one list.

This is the entry point the HTTP layer talks to. It wires the stores to the
filter and ranking pipeline and keeps joined entries consistent when a
session is created or deleted.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterable, Optional

from core.services.date_helpers import sort_key
from core.services.joined_sessions import JoinedSessionStore
from core.services.profile_store import ProfileStore
from core.services.seed_sessions import SEED_SESSION_IDS, get_seed_session, get_seed_sessions
from core.services.session_builder import BuiltSession, build_session_from_form
from core.services.session_logic import apply_filters_and_sorting
from core.services.session_store import SessionStore
from core.services.session_visibility import can_profile_join_session, is_session_visible_to_profile
from core.services.workouts import WorkoutStore
from core.storage import KeyValueStorage
from core.validators import GROUP_IDS, FilterState, JoinedSession, Session, SessionFormInput

logger = logging.getLogger(__name__)


class SessionNotFoundError(LookupError):
    pass


class JoinNotAllowedError(PermissionError):
    pass


class SessionCatalog:
    def __init__(
        self,
        storage: KeyValueStorage,
        clock: Optional[Callable[[], datetime]] = None,
        include_seeds: bool = True,
    ):
        self.clock = clock or datetime.now
        self.include_seeds = include_seeds
        self.sessions = SessionStore(storage, clock=self.clock)
        self.joined = JoinedSessionStore(storage)
        self.workouts = WorkoutStore(storage)
        self.profiles = ProfileStore(storage)

    def _seeds(self, now: datetime) -> list[Session]:
        return get_seed_sessions(now) if self.include_seeds else []

    async def all_sessions(self, now: Optional[datetime] = None) -> list[Session]:
        """Seeds plus stored sessions; a stored session replaces a seed with the same id."""
        now = now or self.clock()
        merged: dict[str, Session] = {s.id: s for s in self._seeds(now)}
        # an unreadable store loads as empty, leaving the seeds
        for session in await self.sessions.get_all():
            merged[session.id] = session
        return list(merged.values())

    async def get_session(self, session_id: str, now: Optional[datetime] = None) -> Optional[Session]:
        now = now or self.clock()
        if self.include_seeds and session_id in SEED_SESSION_IDS:
            stored = await self.sessions.get(session_id)
            return stored or get_seed_session(session_id, now)
        return await self.sessions.get(session_id)

    async def rank_for_runner(self, sessions: Iterable[Session], filters: FilterState, now: Optional[datetime] = None) -> list[Session]:
        """Filter and rank any session list with the runner's stored paces and workouts."""
        profile = await self.profiles.get_profile()
        paces = await self.profiles.get_reference_paces()
        workouts = await self.workouts.by_id()
        visible = [s for s in sessions if is_session_visible_to_profile(s, profile)]
        return apply_filters_and_sorting(visible, filters, paces, now=now or self.clock(), workouts=workouts)

    async def discover(self, filters: FilterState, now: Optional[datetime] = None) -> list[Session]:
        now = now or self.clock()
        return await self.rank_for_runner(await self.all_sessions(now), filters, now)

    async def create_and_join(self, form: SessionFormInput, now: Optional[datetime] = None) -> BuiltSession:
        """Build, persist and auto-join the creator in the default group."""
        built = build_session_from_form(
            spot=form.spot,
            date_label=form.date_label,
            time_label=form.time_label,
            session_type=form.session_type,
            group_configs=form.group_configs,
            workout_id=form.workout_id,
            now=now or self.clock(),
        )
        stored = await self.sessions.create(built.session)
        await self.joined.upsert(stored.id, built.default_group_id)
        if form.workout_id:
            await self.workouts.mark_used(form.workout_id)
        return BuiltSession(id=stored.id, session=stored, default_group_id=built.default_group_id)

    async def update(self, session_id: str, patch: dict) -> Optional[Session]:
        return await self.sessions.update(session_id, patch)

    async def delete(self, session_id: str) -> bool:
        """Remove a user-authored session and its joined entry. False if it was not stored."""
        existing = await self.sessions.get(session_id)
        if existing is None:
            logger.warning("Session %s not found for delete", session_id)
            return False
        await self.sessions.remove(session_id)
        await self.joined.remove(session_id)
        return True

    async def join(self, session_id: str, group_id: Optional[str] = None, now: Optional[datetime] = None) -> JoinedSession:
        """Join an offered group; defaults to the session's recommended group.

        Raises SessionNotFoundError, JoinNotAllowedError, or ValueError for a
        group the session does not offer.
        """
        session = await self.get_session(session_id, now)
        if session is None:
            raise SessionNotFoundError(session_id)
        profile = await self.profiles.get_profile()
        if not can_profile_join_session(session, profile):
            raise JoinNotAllowedError(f"Session {session_id} is reserved to {session.host_group_name} members")

        chosen = group_id or session.recommended_group_id
        if chosen not in GROUP_IDS or chosen not in session.offered_group_ids():
            raise ValueError(f"Group {chosen} is not offered by session {session_id}")
        return await self.joined.upsert(session_id, chosen)

    async def leave(self, session_id: str) -> None:
        await self.joined.remove(session_id)

    async def my_sessions(self, now: Optional[datetime] = None) -> list[tuple[Session, JoinedSession]]:
        """Joined sessions that still exist, in chronological order."""
        now = now or self.clock()
        by_id = {s.id: s for s in await self.all_sessions(now)}
        pairs = [(by_id[j.session_id], j) for j in await self.joined.get_all() if j.session_id in by_id]
        return sorted(pairs, key=lambda pair: sort_key(pair[0], now))
