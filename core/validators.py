"""Pydantic validation models for persisted records and user-facing inputs.

Records are stored and exchanged as camelCase JSON (``dateISO``,
``paceGroupsOverride``...). Models expose snake_case attributes and accept
either spelling on input.
"""

from __future__ import annotations

from datetime import date as dt_date
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from core.services.run_types import RunTypeId

GroupId = Literal["A", "B", "C", "D"]
GROUP_IDS: tuple[str, ...] = ("A", "B", "C", "D")
DATE_ISO_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_record(self) -> dict[str, Any]:
        """JSON-ready camelCase dict, omitting unset optional fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# --- Session records ---


class PaceGroup(CamelModel):
    id: str = Field(min_length=1, strict=True)
    label: str = Field(strict=True)
    pace_range: str = Field(strict=True)
    runners_count: int = Field(ge=0, strict=True)
    avg_pace_seconds_per_km: float = Field(gt=0, strict=True)


class SessionGroupOverride(CamelModel):
    """Full description of one group as it will be run on the session date."""

    id: GroupId
    is_active: bool = Field(strict=True)
    pace_seconds_per_km: Optional[float] = Field(default=None, gt=0)
    reps: Optional[int] = Field(default=None, ge=0)
    effort_duration_seconds: Optional[float] = Field(default=None, ge=0)
    effort_distance_km: Optional[float] = Field(default=None, ge=0)
    recovery_duration_seconds: Optional[float] = Field(default=None, ge=0)


class LegacyGroupOverride(CamelModel):
    """Pre-``paceGroupsOverride`` shape, keyed by ``groupId``."""

    group_id: GroupId
    repetitions: Optional[int] = None
    effort_seconds: Optional[float] = None
    recovery_seconds: Optional[float] = None
    pace_seconds_per_km: Optional[float] = None


class Session(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: str = Field(min_length=1, strict=True)
    title: str = Field(strict=True)
    spot: str = Field(strict=True)
    date_label: str = Field(strict=True)
    date_iso: Optional[str] = Field(default=None, alias="dateISO", pattern=DATE_ISO_PATTERN, strict=True)
    time_minutes: Optional[int] = Field(default=None, ge=0, le=1439, strict=True)
    type_label: str = Field(strict=True)
    volume: str = Field(strict=True)
    target_pace: str = Field(strict=True)
    estimated_distance_km: float = Field(ge=0, strict=True)
    recommended_group_id: str = Field(strict=True)
    pace_groups: list[PaceGroup]
    pace_groups_override: Optional[list[SessionGroupOverride]] = None
    group_overrides: Optional[list[LegacyGroupOverride]] = None
    workout_id: Optional[str] = None
    is_custom: Optional[bool] = Field(default=None, strict=True)
    visibility: Optional[Literal["public", "members"]] = None
    host_group_name: Optional[str] = None
    gender_restriction: Optional[Literal["women_only"]] = None
    club_id: Optional[str] = None
    meeting_point: Optional[str] = None
    meeting_point_gps: Optional[str] = Field(default=None, alias="meetingPointGPS")
    coach_advice: Optional[str] = None
    coach_phone: Optional[str] = None
    coach_name: Optional[str] = None

    @property
    def has_canonical_date(self) -> bool:
        return bool(self.date_iso) and self.time_minutes is not None

    def offered_group_ids(self) -> list[str]:
        """Group ids a runner may pick: active overrides when present, else legacy groups."""
        if self.pace_groups_override:
            return [g.id for g in self.pace_groups_override if g.is_active]
        return [g.id for g in self.pace_groups]


class JoinedSession(CamelModel):
    session_id: str = Field(min_length=1, strict=True)
    group_id: GroupId


# --- Runner profile ---


class ReferencePaces(CamelModel):
    """Runner pace zones in seconds per km; every bound is optional."""

    easy_min: Optional[float] = Field(default=None, gt=0)
    easy_max: Optional[float] = Field(default=None, gt=0)
    tempo_min: Optional[float] = Field(default=None, gt=0)
    tempo_max: Optional[float] = Field(default=None, gt=0)
    threshold_min: Optional[float] = Field(default=None, gt=0)
    threshold_max: Optional[float] = Field(default=None, gt=0)
    intervals_min: Optional[float] = Field(default=None, gt=0)
    intervals_max: Optional[float] = Field(default=None, gt=0)


class RunnerProfile(CamelModel):
    name: str = Field(min_length=1, max_length=120)
    group_name: str = Field(default="", max_length=120)
    club_name: Optional[str] = Field(default=None, max_length=120)
    main_goal: Literal["5k", "10k", "21k", "42k", "other"] = "other"
    default_group: Optional[GroupId] = None


class TestRecord(CamelModel):
    __test__ = False  # not a pytest test class

    id: str = Field(min_length=1, strict=True)
    kind: Literal["distance", "duration"]
    label: str = Field(strict=True)
    mode: Optional[Literal["time_over_distance", "distance_over_time"]] = None
    distance_meters: Optional[float] = Field(default=None, gt=0)
    duration_seconds: Optional[float] = Field(default=None, gt=0)
    pace_seconds_per_km: Optional[float] = Field(default=None, gt=0)
    test_date: Optional[str] = Field(default=None, pattern=DATE_ISO_PATTERN)
    test_type: Optional[Literal["solo", "official", "training"]] = None
    created_at: Optional[float] = None


# --- Workout templates ---


class WorkoutTemplate(CamelModel):
    """Reusable workout structure; sessions reference it by id but never write to it."""

    id: str = Field(min_length=1, strict=True)
    name: str = Field(min_length=1, strict=True)
    run_type: RunTypeId
    description: Optional[str] = None
    base_pace_seconds_per_km: Optional[float] = Field(default=None, gt=0)
    reps: Optional[int] = Field(default=None, ge=0)
    effort_duration_seconds: Optional[float] = Field(default=None, ge=0)
    effort_distance_km: Optional[float] = Field(default=None, ge=0)
    recovery_duration_seconds: Optional[float] = Field(default=None, ge=0)
    created_at: float
    last_used_at: Optional[float] = None
    is_custom: bool = True


# --- Query / form inputs ---


class PaceRange(CamelModel):
    min_seconds_per_km: float = Field(gt=0)
    max_seconds_per_km: float = Field(gt=0)

    @model_validator(mode="after")
    def min_lte_max(self):
        if self.min_seconds_per_km > self.max_seconds_per_km:
            raise ValueError("minSecondsPerKm must be <= maxSecondsPerKm")
        return self


class CustomDateRange(CamelModel):
    start_date: dt_date
    end_date: dt_date


class FilterState(CamelModel):
    """Client-held discovery query. An unset field places no constraint."""

    date: Optional[Literal["today", "thisWeek", "thisMonth", "custom"]] = None
    custom_date_range: Optional[CustomDateRange] = None
    type: Optional[RunTypeId] = None
    pace_range: Optional[PaceRange] = None
    spot: Optional[str] = None
    gender_restriction: Optional[Literal["women_only"]] = None
    walking_only: bool = False


class SessionGroupConfig(CamelModel):
    id: GroupId
    is_active: bool = True
    pace_seconds_per_km: Optional[int] = Field(default=None, gt=0)
    reps: Optional[int] = Field(default=None, ge=0)
    effort_duration_seconds: Optional[int] = Field(default=None, ge=0)
    effort_distance_km: Optional[float] = Field(default=None, ge=0)
    recovery_duration_seconds: Optional[int] = Field(default=None, ge=0)


class SessionFormInput(CamelModel):
    spot: str = Field(min_length=1, max_length=140)
    date_label: str = Field(min_length=1, max_length=80)
    time_label: str = Field(min_length=1, max_length=10)
    session_type: str = Field(min_length=1, max_length=80)
    group_configs: list[SessionGroupConfig] = Field(default_factory=list)
    workout_id: Optional[str] = None

    @field_validator("group_configs")
    @classmethod
    def unique_group_ids(cls, v):
        ids = [g.id for g in v]
        if len(ids) != len(set(ids)):
            raise ValueError("group_configs must not repeat a group id")
        return v
