from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from core.services.date_helpers import (
    extract_day,
    extract_month,
    extract_time_minutes,
    format_label,
    resolve_upcoming,
    to_date_iso,
)
from core.validators import PaceGroup, Session, SessionGroupConfig, SessionGroupOverride

logger = logging.getLogger(__name__)

DEFAULT_TIME_MINUTES = 6 * 60
PLACEHOLDER_TARGET_PACE = "5:00/km"
MIN_DISPLAY_PACE_SECONDS = 180  # 3'00/km
PACE_BAND_SECONDS = 10
DEFAULT_GROUP_PRIORITY = ("C", "B", "A", "D")

# Keyword tables, first hit wins. Matching is case-sensitive on the raw type.
_VOLUME_LABELS = (
    ("FARTLEK", "Fartlek personnalisé"),
    ("SEUIL", "Séance seuil personnalisée"),
    ("SORTIE", "Sortie longue personnalisée"),
)
_DEFAULT_VOLUME_LABEL = "Séance personnalisée"
_DISTANCES_KM = (
    ("SORTIE", 12),
    ("SEUIL", 8),
)
_DEFAULT_DISTANCE_KM = 10


@dataclass(frozen=True)
class BuiltSession:
    id: str
    session: Session
    default_group_id: str


def new_session_id() -> str:
    return f"custom-{uuid.uuid4().hex}"


def _mm_ss(seconds: float) -> str:
    seconds = int(round(seconds))
    return f"{seconds // 60}'{seconds % 60:02d}"


def format_pace_label(seconds_per_km: float) -> str:
    """310 -> ``"5'10/km"``."""
    return f"{_mm_ss(seconds_per_km)}/km"


def format_pace_range(avg_seconds_per_km: float) -> str:
    """310 -> ``"5'00–5'20/km"``; the lower bound never goes below 3'00/km."""
    low = max(MIN_DISPLAY_PACE_SECONDS, avg_seconds_per_km - PACE_BAND_SECONDS)
    high = avg_seconds_per_km + PACE_BAND_SECONDS
    return f"{_mm_ss(low)}–{_mm_ss(high)}/km"


def _first_match(session_type: str, table, default):
    return next((value for keyword, value in table if keyword in session_type), default)


def _volume_for(session_type: str) -> tuple[int, str]:
    return (
        _first_match(session_type, _DISTANCES_KM, _DEFAULT_DISTANCE_KM),
        _first_match(session_type, _VOLUME_LABELS, _DEFAULT_VOLUME_LABEL),
    )


def _pace_group(config: SessionGroupConfig) -> PaceGroup:
    return PaceGroup(
        id=config.id,
        label=f"Groupe {config.id}",
        pace_range=format_pace_range(config.pace_seconds_per_km),
        runners_count=1,  # the creator
        avg_pace_seconds_per_km=float(config.pace_seconds_per_km),
    )


def _is_usable(config: SessionGroupConfig) -> bool:
    return config.is_active and config.pace_seconds_per_km is not None


def _default_group_id(configs: list[SessionGroupConfig]) -> str:
    present = {g.id for g in configs}
    for group_id in DEFAULT_GROUP_PRIORITY:
        if group_id in present:
            return group_id
    return "C"


def resolve_schedule(date_label: str, time_label: str, now: Optional[datetime] = None) -> tuple[datetime, int]:
    """Session datetime and minutes-since-midnight from form tokens.

    Missing time means 06:00, missing day means today, missing month means
    the current one. A past date rolls to next year. Raises ValueError for a
    time that is not a valid ``HH:MM`` or a day that does not exist.
    """
    current = now if now is not None else datetime.now()
    time_minutes = extract_time_minutes(time_label)
    if time_minutes is None:
        if (time_label or "").strip():
            raise ValueError(f"Invalid session time: {time_label!r}")
        time_minutes = DEFAULT_TIME_MINUTES
    day = extract_day(date_label) or current.day
    month = extract_month(date_label) or current.month
    hour, minute = divmod(time_minutes, 60)

    resolved = resolve_upcoming(month, day, hour, minute, current)
    if resolved is None:
        raise ValueError(f"Invalid session date: {date_label!r}")
    return resolved, time_minutes


def build_session_from_form(
    spot: str,
    date_label: str,
    time_label: str,
    session_type: str,
    group_configs: Iterable[SessionGroupConfig],
    workout_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> BuiltSession:
    """Assemble a user-authored session from the create form.

    Raises ValueError when the date tokens name a day that does not exist.
    """
    configs = list(group_configs)
    session_id = new_session_id()
    session_date, time_minutes = resolve_schedule(date_label, time_label, now)

    usable = [g for g in configs if _is_usable(g)]
    pace_groups = [_pace_group(g) for g in usable]
    default_group_id = _default_group_id(configs)

    if not pace_groups and configs:
        first = next((g for g in configs if _is_usable(g)), None)
        if first is not None:
            pace_groups.append(_pace_group(first))
            default_group_id = first.id

    if pace_groups:
        target_pace = format_pace_label(pace_groups[0].avg_pace_seconds_per_km)
    else:
        logger.warning("Session %s has no active group with a pace, using placeholder target pace", session_id)
        target_pace = PLACEHOLDER_TARGET_PACE

    overrides = [
        SessionGroupOverride(
            id=g.id,
            is_active=True,
            pace_seconds_per_km=g.pace_seconds_per_km,
            reps=g.reps,
            effort_duration_seconds=g.effort_duration_seconds,
            effort_distance_km=g.effort_distance_km,
            recovery_duration_seconds=g.recovery_duration_seconds,
        )
        for g in usable
    ]

    distance_km, volume = _volume_for(session_type)
    type_label = session_type.upper()

    session = Session(
        id=session_id,
        title=type_label,
        spot=spot,
        date_label=format_label(session_date, time_minutes),
        date_iso=to_date_iso(session_date),
        time_minutes=time_minutes,
        type_label=type_label,
        volume=volume,
        target_pace=target_pace,
        estimated_distance_km=float(distance_km),
        recommended_group_id=default_group_id,
        pace_groups=pace_groups,
        pace_groups_override=overrides or None,
        workout_id=workout_id,
        is_custom=True,
    )
    logger.info("Built session %s (%s at %s, %d groups)", session_id, type_label, spot, len(pace_groups))
    return BuiltSession(id=session_id, session=session, default_group_id=default_group_id)
