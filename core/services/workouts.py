"""Workout templates and per-group effective configuration.

A workout is a reusable template. Sessions reference it by ``workoutId`` and
carry their own per-group overrides; editing a template never rewrites a
published session.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from pydantic import ValidationError

from core.services.run_types import RunTypeId
from core.storage import JsonArrayStore
from core.validators import SessionGroupOverride, WorkoutTemplate

logger = logging.getLogger(__name__)

WORKOUTS_STORAGE_KEY = "workouts:v1"

# Seconds per km added to the workout base pace for each group.
GROUP_PACE_OFFSETS = {"A": 0, "B": 20, "C": 40, "D": 60}

INTERVAL_RUN_TYPES = frozenset({
    RunTypeId.FARTLEK,
    RunTypeId.INTERVAL_400M,
    RunTypeId.INTERVAL_800M,
    RunTypeId.INTERVAL_1000M,
    RunTypeId.INTERVAL_1600M,
})


class InvalidWorkoutError(ValueError):
    pass


@dataclass(frozen=True)
class EffectiveGroupConfig:
    repetitions: Optional[int] = None
    effort_seconds: Optional[float] = None
    effort_distance_km: Optional[float] = None
    recovery_seconds: Optional[float] = None
    pace_seconds_per_km: Optional[float] = None


def _first(*values):
    for value in values:
        if value is not None:
            return value
    return None


def effective_group_config(
    workout: Optional[WorkoutTemplate],
    overrides: Optional[Sequence[SessionGroupOverride]],
    group_id: str,
) -> EffectiveGroupConfig:
    """Override value, else workout default, else None, field by field.

    Only active overrides count. Rep structure defaults only exist for
    interval-style workouts; group pace is the workout base pace plus the
    group's offset.
    """
    override = next((o for o in overrides or () if o.id == group_id and o.is_active), None)

    defaults = EffectiveGroupConfig()
    if workout is not None:
        base = workout.base_pace_seconds_per_km
        pace = base + GROUP_PACE_OFFSETS.get(group_id, 0) if base is not None else None
        if workout.run_type in INTERVAL_RUN_TYPES:
            defaults = EffectiveGroupConfig(
                repetitions=workout.reps,
                effort_seconds=workout.effort_duration_seconds,
                effort_distance_km=workout.effort_distance_km,
                recovery_seconds=workout.recovery_duration_seconds,
                pace_seconds_per_km=pace,
            )
        else:
            defaults = EffectiveGroupConfig(pace_seconds_per_km=pace)

    if override is None:
        return defaults
    return EffectiveGroupConfig(
        repetitions=_first(override.reps, defaults.repetitions),
        effort_seconds=_first(override.effort_duration_seconds, defaults.effort_seconds),
        effort_distance_km=_first(override.effort_distance_km, defaults.effort_distance_km),
        recovery_seconds=_first(override.recovery_duration_seconds, defaults.recovery_seconds),
        pace_seconds_per_km=_first(override.pace_seconds_per_km, defaults.pace_seconds_per_km),
    )


class WorkoutStore(JsonArrayStore[WorkoutTemplate]):
    storage_key = WORKOUTS_STORAGE_KEY
    record_model = WorkoutTemplate

    async def get_all(self) -> list[WorkoutTemplate]:
        return await self.load()

    async def get(self, workout_id: str) -> Optional[WorkoutTemplate]:
        for workout in await self.load():
            if workout.id == workout_id:
                return workout
        return None

    async def by_id(self) -> dict[str, WorkoutTemplate]:
        return {w.id: w for w in await self.load()}

    async def save_workout(self, workout: WorkoutTemplate | dict[str, Any]) -> WorkoutTemplate:
        """Insert or replace by id."""
        try:
            record = WorkoutTemplate.model_validate(
                workout.to_record() if isinstance(workout, WorkoutTemplate) else workout
            )
        except ValidationError as exc:
            raise InvalidWorkoutError(f"Invalid workout data: {exc.error_count()} error(s)") from exc

        workouts = await self.load()
        for i, existing in enumerate(workouts):
            if existing.id == record.id:
                workouts[i] = record
                break
        else:
            workouts.append(record)
        await self.save(workouts)
        return record

    async def remove(self, workout_id: str) -> None:
        workouts = await self.load()
        remaining = [w for w in workouts if w.id != workout_id]
        if len(remaining) != len(workouts):
            await self.save(remaining)

    async def mark_used(self, workout_id: str) -> None:
        workouts = await self.load()
        for i, workout in enumerate(workouts):
            if workout.id == workout_id:
                workouts[i] = workout.model_copy(update={"last_used_at": time.time() * 1000})
                await self.save(workouts)
                return
        logger.debug("Workout %s not found, not marking as used", workout_id)
