"""Tests for date label parsing, calendar buckets and the sort key chain."""

from __future__ import annotations

from datetime import date, datetime

from core.services.date_helpers import (
    UNDEFINED_DATE_LABEL,
    combine,
    format_date_for_list,
    format_label,
    is_date_in_custom_range,
    is_date_in_range,
    is_future_date,
    parse_date_iso,
    parse_label,
    sort_key,
    week_bounds,
)

NOW = datetime(2025, 11, 5, 12, 0)  # a Wednesday


# --- parse_label ---

def test_parse_label_full_label():
    parsed = parse_label("LUNDI 10 NOVEMBRE 06:00", NOW)
    assert parsed is not None
    assert parsed.date_iso == "2025-11-10"
    assert parsed.time_minutes == 360
    assert parsed.date == datetime(2025, 11, 10, 6, 0)


def test_parse_label_past_date_rolls_to_next_year():
    parsed = parse_label("LUNDI 3 NOVEMBRE 06:00", NOW)
    assert parsed is not None
    assert parsed.date_iso == "2026-11-03"


def test_parse_label_month_is_case_insensitive():
    parsed = parse_label("samedi 15 novembre 07:00", NOW)
    assert parsed is not None
    assert parsed.date_iso == "2025-11-15"
    assert parsed.time_minutes == 420


def test_parse_label_without_month_uses_current_month():
    parsed = parse_label("VENDREDI 28 18:30", NOW)
    assert parsed is not None
    assert parsed.date_iso == "2025-11-28"
    assert parsed.time_minutes == 18 * 60 + 30


def test_parse_label_accented_month():
    parsed = parse_label("MARDI 3 FÉVRIER 07:15", NOW)
    assert parsed is not None
    assert parsed.date_iso == "2026-02-03"


def test_parse_label_missing_time_returns_none():
    assert parse_label("LUNDI 10 NOVEMBRE", NOW) is None


def test_parse_label_out_of_range_time_returns_none():
    assert parse_label("LUNDI 10 NOVEMBRE 25:00", NOW) is None
    assert parse_label("LUNDI 10 NOVEMBRE 10:75", NOW) is None


def test_parse_label_impossible_date_returns_none():
    assert parse_label("31 FÉVRIER 06:00", NOW) is None


def test_parse_label_empty_or_wrong_type():
    assert parse_label("", NOW) is None
    assert parse_label(None, NOW) is None


# --- format_label ---

def test_format_label():
    assert format_label(date(2025, 11, 10), 360) == "LUNDI 10 NOVEMBRE 06:00"
    assert format_label(date(2025, 8, 17), 19 * 60 + 5) == "DIMANCHE 17 AOÛT 19:05"


def test_format_then_parse_recovers_date_and_time():
    label = format_label(date(2025, 12, 24), 1080)
    parsed = parse_label(label, NOW)
    assert parsed is not None
    assert parsed.date_iso == "2025-12-24"
    assert parsed.time_minutes == 1080


# --- canonical helpers ---

def test_parse_date_iso_rejects_garbage():
    assert parse_date_iso("2025-13-01") is None
    assert parse_date_iso("not a date") is None
    assert parse_date_iso(None) is None
    assert parse_date_iso("2025-11-10") == date(2025, 11, 10)


def test_combine():
    assert combine("2025-11-10", 360) == datetime(2025, 11, 10, 6, 0)
    assert combine("2025-11-10", None) is None
    assert combine(None, 360) is None


# --- is_future_date ---

def test_is_future_date_today_counts():
    assert is_future_date("2025-11-05", NOW) is True


def test_is_future_date_past_and_future():
    assert is_future_date("2025-11-04", NOW) is False
    assert is_future_date("2025-11-06", NOW) is True


def test_is_future_date_unparseable():
    assert is_future_date("garbage", NOW) is False


# --- buckets ---

def test_week_bounds_sunday_to_saturday():
    start, end = week_bounds(date(2025, 11, 5))
    assert start == date(2025, 11, 2)
    assert end == date(2025, 11, 8)


def test_week_bounds_on_sunday():
    start, end = week_bounds(date(2025, 11, 9))
    assert start == date(2025, 11, 9)
    assert end == date(2025, 11, 15)


def test_is_date_in_range_today():
    assert is_date_in_range("2025-11-05", "today", NOW) is True
    assert is_date_in_range("2025-11-06", "today", NOW) is False


def test_is_date_in_range_this_week():
    assert is_date_in_range("2025-11-02", "thisWeek", NOW) is True
    assert is_date_in_range("2025-11-08", "thisWeek", NOW) is True
    assert is_date_in_range("2025-11-09", "thisWeek", NOW) is False


def test_is_date_in_range_this_month():
    assert is_date_in_range("2025-11-30", "thisMonth", NOW) is True
    assert is_date_in_range("2025-12-01", "thisMonth", NOW) is False


def test_is_date_in_range_unknown_bucket():
    assert is_date_in_range("2025-11-05", "custom", NOW) is False


def test_is_date_in_custom_range_inclusive():
    start, end = date(2025, 11, 10), date(2025, 11, 15)
    assert is_date_in_custom_range("2025-11-10", start, end) is True
    assert is_date_in_custom_range("2025-11-15", start, end) is True
    assert is_date_in_custom_range("2025-11-16", start, end) is False


# --- sort_key ---

def test_sort_key_prefers_canonical_fields():
    session = {"dateISO": "2025-11-10", "timeMinutes": 360, "dateLabel": "SAMEDI 15 NOVEMBRE 07:00"}
    assert sort_key(session, NOW) == datetime(2025, 11, 10, 6, 0).timestamp() * 1000


def test_sort_key_falls_back_to_label():
    session = {"dateLabel": "SAMEDI 15 NOVEMBRE 07:00"}
    assert sort_key(session, NOW) == datetime(2025, 11, 15, 7, 0).timestamp() * 1000


def test_sort_key_falls_back_to_first_integer():
    assert sort_key({"dateLabel": "séance 42 bientôt"}, NOW) == 42


def test_sort_key_zero_when_nothing_extractable():
    assert sort_key({"dateLabel": "bientôt"}, NOW) == 0
    assert sort_key({}, NOW) == 0


# --- list display ---

def test_format_date_for_list():
    assert format_date_for_list("2025-11-24", NOW) == "24 nov"
    assert format_date_for_list("2026-02-03", NOW) == "3 fév 2026"
    assert format_date_for_list(None, NOW) == UNDEFINED_DATE_LABEL
