"""Tests for pace maths, record labels and personal-best selection."""

from __future__ import annotations

import pytest

from core.services.personal_records import (
    NO_PACE_LABEL,
    best_records_by_label,
    calculate_distance_from_time_and_pace,
    calculate_pace_seconds_per_km,
    calculate_time_from_distance_and_pace,
    canonical_label,
    format_distance_label,
    format_duration_label,
    format_pace,
    is_record_better,
    parse_pace_input,
    personal_bests,
)
from core.validators import TestRecord


def _distance_record(record_id, meters, seconds, created_at=0, label="old"):
    return TestRecord(
        id=record_id, kind="distance", label=label, mode="time_over_distance",
        distance_meters=meters, duration_seconds=seconds, created_at=created_at,
    )


def _duration_record(record_id, seconds, meters=None, created_at=0, label="old"):
    return TestRecord(
        id=record_id, kind="duration", label=label, mode="distance_over_time",
        distance_meters=meters, duration_seconds=seconds, created_at=created_at,
    )


# --- Pace maths ---

def test_pace_from_distance_and_time():
    assert calculate_pace_seconds_per_km(5000, 1500) == 300
    assert calculate_pace_seconds_per_km(0, 1500) is None
    assert calculate_pace_seconds_per_km(5000, None) is None


def test_time_and_distance_from_pace():
    assert calculate_time_from_distance_and_pace(10000, 300) == 3000
    assert calculate_distance_from_time_and_pace(720, 240) == 3000
    assert calculate_time_from_distance_and_pace(-1, 300) is None
    assert calculate_distance_from_time_and_pace(720, 0) is None


@pytest.mark.parametrize(
    "raw, expected",
    [("5:30", 330), ("5'30", 330), (" 4 : 05 ", 245), ("5", 300), ("5:75", 300), ("abc", None), ("", None), ("0:00", None)],
)
def test_parse_pace_input(raw, expected):
    assert parse_pace_input(raw) == expected


def test_format_pace():
    assert format_pace(330) == "5'30/km"
    assert format_pace(None) == NO_PACE_LABEL
    assert format_pace(0) == NO_PACE_LABEL


# --- Labels ---

def test_format_distance_label():
    assert format_distance_label(200) == "200 m"
    assert format_distance_label(1000) == "1 km"
    assert format_distance_label(1500) == "1.5 km"
    assert format_distance_label(21097.5) == "21.1 km"


def test_format_duration_label():
    assert format_duration_label(720) == "12:00"
    assert format_duration_label(3725) == "1:02:05"


def test_canonical_label_by_mode():
    assert canonical_label(_distance_record("a", 5000, 1200)) == "5 km"
    assert canonical_label(_duration_record("b", 720, 3100)) == "12:00"


def test_canonical_label_falls_back_to_stored():
    record = TestRecord(id="c", kind="distance", label="Cooper")
    assert canonical_label(record) == "Cooper"


# --- Best-of selection ---

def test_faster_time_wins_for_distance_tests():
    slow = _distance_record("slow", 5000, 1300, created_at=2)
    fast = _distance_record("fast", 5000, 1200, created_at=1)
    assert is_record_better(fast, slow) is True
    assert is_record_better(slow, fast) is False


def test_longer_distance_wins_for_duration_tests():
    short = _duration_record("short", 720, 2900)
    far = _duration_record("far", 720, 3100)
    assert is_record_better(far, short) is True


def test_mixed_modes_newer_wins():
    a = _distance_record("a", 5000, 1200, created_at=1)
    b = _duration_record("b", 720, 3000, created_at=2)
    assert is_record_better(b, a) is True
    assert is_record_better(a, b) is False


def test_best_records_by_label_skips_blank_labels():
    blank = TestRecord(id="x", kind="distance", label="  ")
    assert best_records_by_label([blank]) == []


def test_personal_bests_one_per_label_and_ordered():
    records = [
        _duration_record("cooper", 720, None, created_at=1),
        _distance_record("10k", 10000, 2700, created_at=2),
        _distance_record("5k-slow", 5000, 1300, created_at=3),
        _distance_record("5k-fast", 5000, 1250, created_at=4),
        _distance_record("5k-slower", 5000, 1400, created_at=5),
    ]
    bests = personal_bests(records)
    assert [r.id for r in bests] == ["5k-fast", "10k", "cooper"]
    assert [r.label for r in bests] == ["5 km", "10 km", "12:00"]
