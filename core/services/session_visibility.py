from __future__ import annotations

from typing import Optional

from core.validators import RunnerProfile, Session


def _normalize_group_name(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    trimmed = value.strip()
    return trimmed.lower() if trimmed else None


def is_session_visible_to_profile(session: Session, profile: Optional[RunnerProfile]) -> bool:
    # Members-only sessions stay listed; joining is gated separately.
    return True


def can_profile_join_session(session: Session, profile: Optional[RunnerProfile]) -> bool:
    """Members-only sessions require the runner's club to match the host group."""
    if session.visibility != "members":
        return True
    if session.is_custom:
        return True

    host_group = _normalize_group_name(session.host_group_name)
    if host_group is None:
        return True

    club = _normalize_group_name(profile.club_name if profile is not None else None)
    return club is not None and club == host_group
