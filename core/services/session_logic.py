"""Session discovery: filtering, match scoring and ranking.

Everything here is a pure function of its inputs. ``now`` defaults to the
local wall clock; pass it explicitly for deterministic results.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Mapping, Optional

from core.services.date_helpers import (
    is_date_in_custom_range,
    is_date_in_range,
    is_future_date,
    sort_key,
)
from core.services.run_types import WALKING_TYPE_ID, classify_type_label
from core.validators import CustomDateRange, FilterState, PaceRange, ReferencePaces, Session, WorkoutTemplate

PACE_MATCH_BAND_SECONDS = 10

WorkoutLookup = Mapping[str, WorkoutTemplate]


def get_session_run_type_id(session: Session, workouts: Optional[WorkoutLookup] = None) -> Optional[str]:
    """Linked workout's run type when resolvable, else the type label's classification."""
    if session.workout_id and workouts:
        workout = workouts.get(session.workout_id)
        if workout is not None:
            return workout.run_type.value
    run_type = classify_type_label(session.type_label)
    return run_type.value if run_type is not None else None


def is_future_session(session: Session, now: Optional[datetime] = None) -> bool:
    # Legacy records without a canonical date are kept until migrated.
    if not session.date_iso:
        return True
    return is_future_date(session.date_iso, now)


# --- Predicates ---


def matches_date_filter(
    session: Session,
    date_filter: Optional[str],
    custom_range: Optional[CustomDateRange] = None,
    now: Optional[datetime] = None,
) -> bool:
    if not date_filter:
        return True
    if not session.date_iso:
        return True
    if date_filter == "custom":
        # a custom bucket without its range constrains nothing
        if custom_range is None:
            return True
        return is_date_in_custom_range(session.date_iso, custom_range.start_date, custom_range.end_date)
    return is_date_in_range(session.date_iso, date_filter, now)


def matches_type_filter(session: Session, type_filter: Optional[str], workouts: Optional[WorkoutLookup] = None) -> bool:
    if type_filter is None:
        return True
    return get_session_run_type_id(session, workouts) == getattr(type_filter, "value", type_filter)


def matches_spot_filter(session: Session, spot: Optional[str]) -> bool:
    if not spot:
        return True
    return session.spot == spot


def _ranges_overlap(low: float, high: float, filter_low: float, filter_high: float) -> bool:
    return low <= filter_high and high >= filter_low


def matches_pace_filter(session: Session, pace_range: Optional[PaceRange]) -> bool:
    """True iff some group's ``[avg-10, avg+10]`` window overlaps the filter window."""
    if pace_range is None:
        return True
    return any(
        _ranges_overlap(
            g.avg_pace_seconds_per_km - PACE_MATCH_BAND_SECONDS,
            g.avg_pace_seconds_per_km + PACE_MATCH_BAND_SECONDS,
            pace_range.min_seconds_per_km,
            pace_range.max_seconds_per_km,
        )
        for g in session.pace_groups
    )


def matches_filters(
    session: Session,
    filters: FilterState,
    now: Optional[datetime] = None,
    workouts: Optional[WorkoutLookup] = None,
) -> bool:
    if not matches_date_filter(session, filters.date, filters.custom_date_range, now):
        return False
    if not matches_type_filter(session, filters.type, workouts):
        return False
    if not matches_spot_filter(session, filters.spot):
        return False
    if not matches_pace_filter(session, filters.pace_range):
        return False
    if filters.gender_restriction == "women_only" and session.gender_restriction != "women_only":
        return False
    if filters.walking_only and get_session_run_type_id(session, workouts) != WALKING_TYPE_ID:
        return False
    return True


# --- Scoring and ranking ---


def reference_points(paces: Optional[ReferencePaces]) -> list[float]:
    """Zone midpoints, or the lone lower bound when a zone has no max."""
    if paces is None:
        return []
    points: list[float] = []
    for zone in ("easy", "tempo", "threshold", "intervals"):
        low = getattr(paces, f"{zone}_min")
        high = getattr(paces, f"{zone}_max")
        if low is None:
            continue
        points.append((low + high) / 2 if high is not None else low)
    return points


def compute_match_score(session: Session, paces: Optional[ReferencePaces]) -> Optional[float]:
    """Distance in s/km between the closest group and the closest pace zone; lower is better.

    None when the runner has no usable zone or the session has no group.
    """
    refs = reference_points(paces)
    if not refs or not session.pace_groups:
        return None
    return min(
        min(abs(g.avg_pace_seconds_per_km - ref) for ref in refs)
        for g in session.pace_groups
    )


def apply_filters_and_sorting(
    sessions: Iterable[Session],
    filters: FilterState,
    paces: Optional[ReferencePaces],
    now: Optional[datetime] = None,
    workouts: Optional[WorkoutLookup] = None,
) -> list[Session]:
    """Future-only gate, then the filter AND, then ranking.

    Scored sessions come first by ascending score then date; unscored ones
    follow in date order. Python's sort is stable, so equal keys keep their
    input order.
    """
    kept = [
        s for s in sessions
        if is_future_session(s, now) and matches_filters(s, filters, now, workouts)
    ]

    scored: list[tuple[float, float, Session]] = []
    unscored: list[tuple[float, Session]] = []
    for s in kept:
        score = compute_match_score(s, paces)
        when = sort_key(s, now)
        if score is None:
            unscored.append((when, s))
        else:
            scored.append((score, when, s))

    scored.sort(key=lambda item: (item[0], item[1]))
    unscored.sort(key=lambda item: item[0])
    return [item[2] for item in scored] + [item[1] for item in unscored]
