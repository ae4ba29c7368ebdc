"""Run type identifiers and free-text classification.

Session type labels are free text typed by organisers ("FARTLEK", "Sortie
longue", "Séries 400m"...). ``classify_type_label`` maps them to the closed
``RunTypeId`` set by walking ``RUN_TYPE_RULES`` in order and stopping at the
first rule with a keyword contained in the lowercased label.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class RunTypeId(str, Enum):
    EASY_RUN = "easy_run"
    RECOVERY_RUN = "recovery_run"
    TEMPO_RUN = "tempo_run"
    THRESHOLD_RUN = "threshold_run"
    INTERVAL_400M = "interval_400m"
    INTERVAL_800M = "interval_800m"
    INTERVAL_1000M = "interval_1000m"
    INTERVAL_1600M = "interval_1600m"
    FARTLEK = "fartlek"
    LONG_RUN = "long_run"
    HILL_REPEATS = "hill_repeats"
    TRACK_WORKOUT = "track_workout"
    PROGRESSIF = "progressif"


# Type id that the walking-only filter requires.
WALKING_TYPE_ID = "walking"


RUN_TYPE_LABELS: dict[RunTypeId, str] = {
    RunTypeId.EASY_RUN: "Footing facile",
    RunTypeId.RECOVERY_RUN: "Récupération",
    RunTypeId.TEMPO_RUN: "Tempo",
    RunTypeId.THRESHOLD_RUN: "Seuil",
    RunTypeId.INTERVAL_400M: "Séries 400m",
    RunTypeId.INTERVAL_800M: "Séries 800m",
    RunTypeId.INTERVAL_1000M: "Séries 1000m",
    RunTypeId.INTERVAL_1600M: "Séries 1600m",
    RunTypeId.FARTLEK: "Fartlek",
    RunTypeId.LONG_RUN: "Sortie longue",
    RunTypeId.HILL_REPEATS: "Côtes",
    RunTypeId.TRACK_WORKOUT: "Piste",
    RunTypeId.PROGRESSIF: "Progressif",
}

RUN_TYPE_PILL_LABELS: dict[RunTypeId, str] = {
    RunTypeId.EASY_RUN: "FOOTING",
    RunTypeId.RECOVERY_RUN: "RÉCUP",
    RunTypeId.TEMPO_RUN: "TEMPO",
    RunTypeId.THRESHOLD_RUN: "SEUIL",
    RunTypeId.INTERVAL_400M: "400M",
    RunTypeId.INTERVAL_800M: "800M",
    RunTypeId.INTERVAL_1000M: "1000M",
    RunTypeId.INTERVAL_1600M: "MILE",
    RunTypeId.FARTLEK: "FARTLEK",
    RunTypeId.LONG_RUN: "LONGUE",
    RunTypeId.HILL_REPEATS: "CÔTES",
    RunTypeId.TRACK_WORKOUT: "PISTE",
    RunTypeId.PROGRESSIF: "PROGRESSIF",
}


# Evaluated top to bottom; order is precedence. "FARTLEK LONG" is a long run
# because the long-run rule comes first.
RUN_TYPE_RULES: tuple[tuple[tuple[str, ...], RunTypeId], ...] = (
    (("easy run", "easy", "footing facile", "footing"), RunTypeId.EASY_RUN),
    (("recovery run", "recovery", "récupération", "récup"), RunTypeId.RECOVERY_RUN),
    (("tempo run", "tempo"), RunTypeId.TEMPO_RUN),
    (("threshold run", "threshold", "seuil"), RunTypeId.THRESHOLD_RUN),
    (("interval 400", "400m", "série 400", "séries 400"), RunTypeId.INTERVAL_400M),
    (("interval 800", "800m", "série 800", "séries 800"), RunTypeId.INTERVAL_800M),
    (("interval 1000", "1000m", "1km", "série 1000", "séries 1000"), RunTypeId.INTERVAL_1000M),
    (("interval 1600", "1600m", "mile", "série 1600", "séries 1600"), RunTypeId.INTERVAL_1600M),
    (("long run", "long", "sortie longue", "longue"), RunTypeId.LONG_RUN),
    (("hill repeat", "côte", "côtes", "hills"), RunTypeId.HILL_REPEATS),
    (("track workout", "track", "piste"), RunTypeId.TRACK_WORKOUT),
    (("fartlek",), RunTypeId.FARTLEK),
    (("progressif",), RunTypeId.PROGRESSIF),
)


def classify_type_label(type_label: Optional[str]) -> Optional[RunTypeId]:
    """Map a free-text session type label to a RunTypeId, or None if no rule matches."""
    if not type_label:
        return None
    normalized = type_label.lower().strip()
    for keywords, run_type in RUN_TYPE_RULES:
        if any(keyword in normalized for keyword in keywords):
            return run_type
    return None


def run_type_label(run_type: RunTypeId) -> str:
    return RUN_TYPE_LABELS.get(run_type, "Footing facile")


def run_type_pill_label(run_type: RunTypeId) -> str:
    return RUN_TYPE_PILL_LABELS.get(run_type, "FOOTING")
