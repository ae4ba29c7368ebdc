"""Built-in example sessions and their weekly recurrence.

Seeds are stored with their original date and shifted forward by whole weeks
at read time, so they always show as the next upcoming occurrence. The
shifted copy is never persisted.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from core.services.date_helpers import combine, format_label, to_date_iso
from core.validators import PaceGroup, Session

RECURRENCE = timedelta(days=7)


def _groups(*rows: tuple[str, str, int, int]) -> list[PaceGroup]:
    return [
        PaceGroup(id=gid, label=f"Groupe {gid}", pace_range=pace_range, runners_count=runners, avg_pace_seconds_per_km=avg)
        for gid, pace_range, runners, avg in rows
    ]


SEED_SESSIONS: tuple[Session, ...] = (
    Session(
        id="marina-fartlek-long",
        title="FARTLEK LONG",
        spot="Spot 1",
        date_label="LUNDI 10 NOVEMBRE 06:00",
        date_iso="2025-11-10",
        time_minutes=360,
        type_label="FARTLEK",
        volume="3:00 effort x 6 · Récup 2:00",
        target_pace="5:20–6:00/km",
        estimated_distance_km=10,
        recommended_group_id="C",
        pace_groups=_groups(
            ("A", "4'00–4'30/km", 2, 255),
            ("B", "4'30–5'00/km", 5, 285),
            ("C", "5'00–5'30/km", 8, 315),
            ("D", "5'30–6'00/km", 4, 345),
        ),
    ),
    Session(
        id="marina-fartlek-court",
        title="FARTLEK COURT",
        spot="Spot 2",
        date_label="MARDI 11 NOVEMBRE 18:00",
        date_iso="2025-11-11",
        time_minutes=1080,
        type_label="FARTLEK",
        volume="1:30 effort x 8 · Récup 1:00",
        target_pace="4:30–5:00/km",
        estimated_distance_km=8,
        recommended_group_id="B",
        pace_groups=_groups(
            ("A", "3'30–4'00/km", 3, 225),
            ("B", "4'00–4'30/km", 6, 255),
            ("C", "4'30–5'00/km", 7, 285),
            ("D", "5'00–5'30/km", 3, 315),
        ),
    ),
    Session(
        id="explore-fartlek-progressif",
        title="FARTLEK PROGRESSIF",
        spot="Spot 1",
        date_label="MERCREDI 12 NOVEMBRE 18:00",
        date_iso="2025-11-12",
        time_minutes=1080,
        type_label="FARTLEK",
        volume="4:00 effort x 5 · Récup 2:30",
        target_pace="5:10–5:40/km",
        estimated_distance_km=8,
        recommended_group_id="B",
        pace_groups=_groups(
            ("A", "4'50–5'10/km", 2, 300),
            ("B", "5'10–5'30/km", 5, 320),
            ("C", "5'30–5'50/km", 6, 340),
            ("D", "5'50–6'10/km", 3, 360),
        ),
    ),
    Session(
        id="explore-sortie-longue-facile",
        title="SORTIE LONGUE FACILE",
        spot="Spot 2",
        date_label="SAMEDI 15 NOVEMBRE 07:00",
        date_iso="2025-11-15",
        time_minutes=420,
        type_label="SORTIE",
        volume="1h30 sortie continue",
        target_pace="5:30–6:10/km",
        estimated_distance_km=15,
        recommended_group_id="B",
        pace_groups=_groups(
            ("A", "5'10–5'35/km", 4, 323),
            ("B", "5'35–6'00/km", 8, 348),
            ("C", "6'00–6'25/km", 7, 373),
            ("D", "6'25–6'50/km", 3, 398),
        ),
    ),
)

SEED_SESSION_IDS = frozenset(s.id for s in SEED_SESSIONS)


def shift_to_future(session: Session, now: Optional[datetime] = None) -> Session:
    """Advance by whole weeks until strictly after ``now``.

    Sessions without a usable canonical date come back unchanged. Only
    ``dateISO`` and ``dateLabel`` change; ``timeMinutes`` is kept.
    """
    start = combine(session.date_iso, session.time_minutes)
    if start is None:
        return session

    current = now if now is not None else datetime.now()
    occurrence = start
    while occurrence <= current:
        occurrence += RECURRENCE
    if occurrence == start:
        return session
    return session.model_copy(update={
        "date_iso": to_date_iso(occurrence),
        "date_label": format_label(occurrence, session.time_minutes),
    })


def get_seed_sessions(now: Optional[datetime] = None) -> list[Session]:
    return [shift_to_future(s, now) for s in SEED_SESSIONS]


def get_seed_session(session_id: str, now: Optional[datetime] = None) -> Optional[Session]:
    for seed in SEED_SESSIONS:
        if seed.id == session_id:
            return shift_to_future(seed, now)
    return None
