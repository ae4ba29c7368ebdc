"""Tests for discovery filtering, match scoring and ranking."""

from __future__ import annotations

from datetime import date, datetime

import pytest

from core.services.run_types import RunTypeId
from core.services.session_logic import (
    apply_filters_and_sorting,
    compute_match_score,
    get_session_run_type_id,
    is_future_session,
    matches_date_filter,
    matches_filters,
    matches_pace_filter,
    matches_type_filter,
    reference_points,
)
from core.validators import (
    CustomDateRange,
    FilterState,
    PaceGroup,
    PaceRange,
    ReferencePaces,
    Session,
    WorkoutTemplate,
)

NOW = datetime(2025, 11, 5, 12, 0)


def _session(session_id="s-1", date_iso="2025-11-10", paces=(300,), type_label="FARTLEK", **extra):
    return Session(
        id=session_id,
        title=type_label,
        spot=extra.pop("spot", "Spot 1"),
        date_label="",
        date_iso=date_iso,
        time_minutes=360 if date_iso else None,
        type_label=type_label,
        volume="",
        target_pace="",
        estimated_distance_km=10,
        recommended_group_id="C",
        pace_groups=[
            PaceGroup(id=gid, label=f"Groupe {gid}", pace_range="", runners_count=1, avg_pace_seconds_per_km=pace)
            for gid, pace in zip("ABCD", paces)
        ],
        **extra,
    )


def _workout(workout_id="w-1", run_type=RunTypeId.TEMPO_RUN):
    return WorkoutTemplate(id=workout_id, name="Tempo 3x10", run_type=run_type, created_at=0)


# --- Run type resolution ---

def test_run_type_from_label():
    assert get_session_run_type_id(_session(type_label="FARTLEK")) == "fartlek"
    assert get_session_run_type_id(_session(type_label="Renfo")) is None


def test_run_type_linked_workout_wins():
    session = _session(type_label="FARTLEK", workout_id="w-1")
    assert get_session_run_type_id(session, {"w-1": _workout()}) == "tempo_run"


def test_run_type_unknown_workout_falls_back_to_label():
    session = _session(type_label="FARTLEK", workout_id="missing")
    assert get_session_run_type_id(session, {"w-1": _workout()}) == "fartlek"


# --- Future gate ---

def test_future_gate():
    assert is_future_session(_session(date_iso="2025-11-05"), NOW) is True
    assert is_future_session(_session(date_iso="2025-11-04"), NOW) is False
    assert is_future_session(_session(date_iso=None), NOW) is True


# --- Predicates ---

def test_date_filter_unset_or_legacy_passes():
    assert matches_date_filter(_session(), None, now=NOW) is True
    assert matches_date_filter(_session(date_iso=None), "today", now=NOW) is True


def test_date_filter_buckets():
    assert matches_date_filter(_session(date_iso="2025-11-05"), "today", now=NOW) is True
    assert matches_date_filter(_session(date_iso="2025-11-10"), "thisWeek", now=NOW) is False
    assert matches_date_filter(_session(date_iso="2025-11-10"), "thisMonth", now=NOW) is True


def test_date_filter_custom_range():
    rng = CustomDateRange(start_date=date(2025, 11, 10), end_date=date(2025, 11, 12))
    assert matches_date_filter(_session(date_iso="2025-11-12"), "custom", rng, NOW) is True
    assert matches_date_filter(_session(date_iso="2025-11-13"), "custom", rng, NOW) is False


def test_date_filter_custom_without_range_is_unconstrained():
    assert matches_date_filter(_session(), "custom", None, NOW) is True


def test_type_filter():
    assert matches_type_filter(_session(type_label="FARTLEK"), RunTypeId.FARTLEK) is True
    assert matches_type_filter(_session(type_label="SEUIL"), RunTypeId.FARTLEK) is False
    assert matches_type_filter(_session(type_label="SEUIL"), None) is True


def test_pace_filter_overlap():
    # group band [290, 310] overlaps [280, 310]
    assert matches_pace_filter(_session(paces=(300,)), PaceRange(min_seconds_per_km=280, max_seconds_per_km=310)) is True


def test_pace_filter_band_edges():
    assert matches_pace_filter(_session(paces=(300,)), PaceRange(min_seconds_per_km=310, max_seconds_per_km=320)) is True
    assert matches_pace_filter(_session(paces=(300,)), PaceRange(min_seconds_per_km=311, max_seconds_per_km=320)) is False


def test_pace_filter_any_group_suffices():
    session = _session(paces=(250, 360))
    assert matches_pace_filter(session, PaceRange(min_seconds_per_km=355, max_seconds_per_km=365)) is True


def test_pace_filter_no_groups_never_matches():
    assert matches_pace_filter(_session(paces=()), PaceRange(min_seconds_per_km=200, max_seconds_per_km=400)) is False


def test_filters_combine_with_and():
    filters = FilterState(type=RunTypeId.FARTLEK, spot="Spot 2")
    assert matches_filters(_session(spot="Spot 2"), filters, NOW) is True
    assert matches_filters(_session(spot="Spot 1"), filters, NOW) is False


def test_women_only_filter():
    filters = FilterState(gender_restriction="women_only")
    assert matches_filters(_session(gender_restriction="women_only"), filters, NOW) is True
    assert matches_filters(_session(), filters, NOW) is False


def test_walking_only_excludes_classified_runs():
    assert matches_filters(_session(type_label="FARTLEK"), FilterState(walking_only=True), NOW) is False


def test_empty_filters_keep_everything():
    assert matches_filters(_session(), FilterState(), NOW) is True


@pytest.mark.parametrize("field", sorted(FilterState.model_fields))
def test_clearing_one_filter_field_keeps_a_match(field):
    session = _session(date_iso="2025-11-11", spot="Spot 2", gender_restriction="women_only")
    filters = FilterState(
        date="custom",
        custom_date_range=CustomDateRange(start_date=date(2025, 11, 10), end_date=date(2025, 11, 12)),
        type=RunTypeId.FARTLEK,
        pace_range=PaceRange(min_seconds_per_km=290, max_seconds_per_km=310),
        spot="Spot 2",
        gender_restriction="women_only",
    )
    assert matches_filters(session, filters, NOW) is True

    default = FilterState.model_fields[field].default
    weakened = filters.model_copy(update={field: default})
    assert matches_filters(session, weakened, NOW) is True


# --- Scoring ---

def test_reference_points_midpoints_and_lone_min():
    paces = ReferencePaces(easy_min=300, easy_max=340, tempo_min=270, threshold_max=250)
    assert reference_points(paces) == [320, 270]


def test_reference_points_none():
    assert reference_points(None) == []


def test_score_uses_lone_min():
    # a lone lower bound counts as the reference point
    assert compute_match_score(_session(paces=(310,)), ReferencePaces(easy_min=300)) == 10


def test_score_picks_closest_group_and_zone():
    paces = ReferencePaces(easy_min=330, easy_max=350, intervals_min=240, intervals_max=260)
    assert compute_match_score(_session(paces=(255, 300, 345)), paces) == 5


def test_score_none_without_refs_or_groups():
    assert compute_match_score(_session(), None) is None
    assert compute_match_score(_session(), ReferencePaces()) is None
    assert compute_match_score(_session(paces=()), ReferencePaces(easy_min=300)) is None


# --- Ranking ---

def test_scored_before_unscored_regardless_of_date():
    scored_later = _session("scored", date_iso="2025-12-10", paces=(300,))
    unscored_soon = _session("unscored", date_iso="2025-11-06", paces=())
    ranked = apply_filters_and_sorting([unscored_soon, scored_later], FilterState(), ReferencePaces(easy_min=300), NOW)
    assert [s.id for s in ranked] == ["scored", "unscored"]


def test_scored_sorted_by_score_then_date():
    paces = ReferencePaces(easy_min=300)
    a = _session("a", date_iso="2025-11-20", paces=(310,))
    b = _session("b", date_iso="2025-11-10", paces=(310,))
    c = _session("c", date_iso="2025-11-08", paces=(330,))
    ranked = apply_filters_and_sorting([a, b, c], FilterState(), paces, NOW)
    assert [s.id for s in ranked] == ["b", "a", "c"]


def test_no_paces_means_chronological():
    later = _session("later", date_iso="2025-11-20")
    sooner = _session("sooner", date_iso="2025-11-07")
    legacy = _session("legacy", date_iso=None)
    ranked = apply_filters_and_sorting([later, sooner, legacy], FilterState(), None, NOW)
    assert [s.id for s in ranked] == ["legacy", "sooner", "later"]


def test_past_sessions_dropped():
    past = _session("past", date_iso="2025-11-01")
    future = _session("future", date_iso="2025-11-06")
    ranked = apply_filters_and_sorting([past, future], FilterState(), None, NOW)
    assert [s.id for s in ranked] == ["future"]


def test_ranking_is_a_subset_of_input():
    sessions = [_session(f"s-{i}", date_iso=f"2025-11-{10 + i}", paces=(280 + 10 * i,)) for i in range(5)]
    filters = FilterState(pace_range=PaceRange(min_seconds_per_km=295, max_seconds_per_km=315))
    ranked = apply_filters_and_sorting(sessions, filters, ReferencePaces(tempo_min=300, tempo_max=310), NOW)
    assert {s.id for s in ranked} <= {s.id for s in sessions}
    assert all(matches_filters(s, filters, NOW) for s in ranked)
    assert [s.id for s in ranked] == ["s-2", "s-3", "s-1", "s-4"]


def test_ranking_uses_workout_run_type():
    session = _session(type_label="FARTLEK", workout_id="w-1")
    filters = FilterState(type=RunTypeId.TEMPO_RUN)
    ranked = apply_filters_and_sorting([session], filters, None, NOW, workouts={"w-1": _workout()})
    assert [s.id for s in ranked] == ["s-1"]
