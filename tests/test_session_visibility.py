"""Tests for members-only session visibility and join rules."""

from __future__ import annotations

from core.services.session_visibility import can_profile_join_session, is_session_visible_to_profile
from core.validators import RunnerProfile, Session


def _session(**extra):
    return Session(
        id="club-1",
        title="SEUIL",
        spot="Spot 1",
        date_label="",
        type_label="SEUIL",
        volume="",
        target_pace="",
        estimated_distance_km=8,
        recommended_group_id="B",
        pace_groups=[],
        **extra,
    )


def _profile(club_name=None):
    return RunnerProfile(name="Camille", club_name=club_name)


def test_public_session_joinable_by_anyone():
    assert can_profile_join_session(_session(visibility="public"), None) is True


def test_members_session_requires_matching_club():
    session = _session(visibility="members", host_group_name="Marina Runners", is_custom=False)
    assert can_profile_join_session(session, _profile("  marina runners ")) is True
    assert can_profile_join_session(session, _profile("Other Club")) is False
    assert can_profile_join_session(session, _profile()) is False
    assert can_profile_join_session(session, None) is False


def test_members_session_without_host_is_open():
    session = _session(visibility="members", host_group_name="  ", is_custom=False)
    assert can_profile_join_session(session, None) is True


def test_user_authored_session_always_joinable():
    session = _session(visibility="members", host_group_name="Marina Runners", is_custom=True)
    assert can_profile_join_session(session, None) is True


def test_members_sessions_stay_listed():
    session = _session(visibility="members", host_group_name="Marina Runners", is_custom=False)
    assert is_session_visible_to_profile(session, None) is True
