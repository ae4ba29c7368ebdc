"""Personal record (test result) helpers: pace maths, labels, best-of selection.

Two kinds of test exist. A fixed-distance test (``time_over_distance``) is
labelled by its distance and improves when the time goes down; a fixed-time
test (``distance_over_time``) is labelled by its duration and improves when
the distance goes up.
"""

from __future__ import annotations

import math
import re
from typing import Iterable, Optional

from core.validators import TestRecord

NO_PACE_LABEL = "—"

_PACE_INPUT = re.compile(r"^(\d+):(\d{1,2})$")
_LEADING_INT = re.compile(r"^\d+")


def _whole(value: float) -> int | float:
    return int(value) if float(value).is_integer() else value


def calculate_pace_seconds_per_km(distance_meters: Optional[float], duration_seconds: Optional[float]) -> Optional[int]:
    """Rounded seconds per km, or None for missing or non-positive input."""
    if not distance_meters or not duration_seconds or distance_meters <= 0 or duration_seconds <= 0:
        return None
    pace = duration_seconds / (distance_meters / 1000)
    if not math.isfinite(pace):
        return None
    return round(pace)


def calculate_time_from_distance_and_pace(distance_meters: Optional[float], pace_seconds_per_km: Optional[float]) -> Optional[int]:
    if not distance_meters or not pace_seconds_per_km or distance_meters <= 0 or pace_seconds_per_km <= 0:
        return None
    return round(distance_meters / 1000 * pace_seconds_per_km)


def calculate_distance_from_time_and_pace(duration_seconds: Optional[float], pace_seconds_per_km: Optional[float]) -> Optional[int]:
    if not duration_seconds or not pace_seconds_per_km or duration_seconds <= 0 or pace_seconds_per_km <= 0:
        return None
    return round(duration_seconds / pace_seconds_per_km * 1000)


def parse_pace_input(value: Optional[str]) -> Optional[int]:
    """``"5:30"`` / ``"5'30"`` -> 330, ``"5"`` -> 300; None when unparseable."""
    if not value or not value.strip():
        return None
    normalized = re.sub(r"\s", "", value).replace("'", ":")

    match = _PACE_INPUT.match(normalized)
    if match:
        minutes, seconds = int(match.group(1)), int(match.group(2))
        if seconds < 60:
            total = minutes * 60 + seconds
            return total if total > 0 else None

    leading = _LEADING_INT.match(normalized)
    if leading and int(leading.group(0)) > 0:
        return int(leading.group(0)) * 60
    return None


def format_pace(seconds_per_km: Optional[float]) -> str:
    if seconds_per_km is None or seconds_per_km <= 0:
        return NO_PACE_LABEL
    total = int(round(seconds_per_km))
    return f"{total // 60}'{total % 60:02d}/km"


def format_distance_label(distance_meters: float) -> str:
    """``200 m``, ``1 km``, ``1.5 km``."""
    if distance_meters < 1000:
        return f"{_whole(distance_meters)} m"
    km = distance_meters / 1000
    if km.is_integer():
        return f"{int(km)} km"
    return f"{km:.1f} km"


def format_duration_label(duration_seconds: float) -> str:
    """``M:SS`` below one hour, ``H:MM:SS`` above."""
    total = int(duration_seconds)
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def canonical_label(record: TestRecord) -> str:
    """Label derived from the measured values, falling back to the stored one."""
    if record.mode == "time_over_distance" and record.distance_meters is not None:
        return format_distance_label(record.distance_meters)
    if record.mode == "distance_over_time" and record.duration_seconds is not None:
        return format_duration_label(record.duration_seconds)
    if record.duration_seconds is not None:
        return format_duration_label(record.duration_seconds)
    if record.distance_meters is not None:
        return format_distance_label(record.distance_meters)
    return record.label


def with_canonical_label(record: TestRecord) -> TestRecord:
    label = canonical_label(record)
    if label == record.label:
        return record
    return record.model_copy(update={"label": label})


def is_record_better(candidate: TestRecord, current: TestRecord) -> bool:
    """Performance comparison for same-mode records, otherwise newer wins."""
    if candidate.mode == current.mode:
        if candidate.mode == "time_over_distance":
            if candidate.duration_seconds is not None and current.duration_seconds is not None:
                return candidate.duration_seconds < current.duration_seconds
        elif candidate.mode == "distance_over_time":
            if candidate.distance_meters is not None and current.distance_meters is not None:
                return candidate.distance_meters > current.distance_meters
    return (candidate.created_at or 0) >= (current.created_at or 0)


def best_records_by_label(records: Iterable[TestRecord]) -> list[TestRecord]:
    best: dict[str, TestRecord] = {}
    for record in records:
        key = (record.label or "").strip()
        if not key:
            continue
        previous = best.get(key)
        if previous is None or is_record_better(record, previous):
            best[key] = record
    return list(best.values())


def _pr_order(record: TestRecord):
    # distance PRs first, shortest first; then duration PRs; then by label
    if record.distance_meters is not None:
        return (0, record.distance_meters, record.label)
    if record.duration_seconds is not None:
        return (1, record.duration_seconds, record.label)
    return (2, 0, record.label)


def personal_bests(records: Iterable[TestRecord]) -> list[TestRecord]:
    """One best record per canonical label, distance PRs before duration PRs."""
    deduped = best_records_by_label(with_canonical_label(r) for r in records)
    return sorted(deduped, key=_pr_order)
