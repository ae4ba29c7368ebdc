from __future__ import annotations

import json
import logging
import time
import uuid
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from core.services.personal_records import calculate_pace_seconds_per_km, canonical_label, personal_bests, with_canonical_label
from core.storage import JsonArrayStore, KeyValueStorage, StorageError
from core.validators import ReferencePaces, RunnerProfile, TestRecord

logger = logging.getLogger(__name__)

PROFILE_STORAGE_KEY = "profile:v1"
REFERENCE_PACES_STORAGE_KEY = "referencePaces:v1"
TEST_RECORDS_STORAGE_KEY = "testRecords:v2"

ModelT = TypeVar("ModelT", bound=BaseModel)


class InvalidRecordError(ValueError):
    pass


class TestRecordStore(JsonArrayStore[TestRecord]):
    __test__ = False  # not a pytest test class

    storage_key = TEST_RECORDS_STORAGE_KEY
    record_model = TestRecord


class ProfileStore:
    """Runner profile, reference pace zones and personal-record history."""

    def __init__(self, storage: KeyValueStorage):
        self.storage = storage
        self.records = TestRecordStore(storage)

    async def _load_object(self, key: str, model: type[ModelT]) -> Optional[ModelT]:
        try:
            raw = await self.storage.get_item(key)
        except StorageError as exc:
            logger.warning("Failed to read %s from storage: %s", key, exc)
            return None
        if not raw:
            return None
        try:
            return model.model_validate(json.loads(raw))
        except (ValueError, ValidationError):
            logger.warning("Invalid data under %s, ignoring", key)
            return None

    async def _save_object(self, key: str, value: BaseModel) -> None:
        await self.storage.set_item(key, json.dumps(value.to_record(), ensure_ascii=False))  # type: ignore[attr-defined]

    # --- Profile ---

    async def get_profile(self) -> Optional[RunnerProfile]:
        return await self._load_object(PROFILE_STORAGE_KEY, RunnerProfile)

    async def save_profile(self, profile: RunnerProfile) -> None:
        await self._save_object(PROFILE_STORAGE_KEY, profile)

    # --- Reference paces ---

    async def get_reference_paces(self) -> Optional[ReferencePaces]:
        return await self._load_object(REFERENCE_PACES_STORAGE_KEY, ReferencePaces)

    async def save_reference_paces(self, paces: ReferencePaces) -> None:
        await self._save_object(REFERENCE_PACES_STORAGE_KEY, paces)

    # --- Personal records ---

    async def get_test_records(self) -> list[TestRecord]:
        """Best record per canonical label; distance PRs first, then duration PRs."""
        return personal_bests(await self.records.load())

    async def get_all_test_records(self) -> list[TestRecord]:
        """Full history with canonical labels, newest first."""
        history = [with_canonical_label(r) for r in await self.records.load()]
        return sorted(history, key=lambda r: r.created_at or 0, reverse=True)

    async def save_test_record(self, record: TestRecord | dict[str, Any]) -> TestRecord:
        """Append to the history; every attempt is kept, the best one is derived on read."""
        payload = record.to_record() if isinstance(record, TestRecord) else dict(record)
        payload.setdefault("id", uuid.uuid4().hex)
        try:
            validated = TestRecord.model_validate(payload)
        except ValidationError as exc:
            raise InvalidRecordError(f"Invalid test record: {exc.error_count()} error(s)") from exc

        pace = calculate_pace_seconds_per_km(validated.distance_meters, validated.duration_seconds)
        normalized = validated.model_copy(update={
            "label": canonical_label(validated),
            "created_at": validated.created_at if validated.created_at is not None else time.time() * 1000,
            "pace_seconds_per_km": pace if pace is not None else validated.pace_seconds_per_km,
        })

        history = await self.records.load()
        history.append(normalized)
        await self.records.save(history)
        logger.info("Saved test record %s (%s)", normalized.id, normalized.label)
        return normalized

    async def delete_test_record(self, record_id: str) -> None:
        history = await self.records.load()
        remaining = [r for r in history if r.id != record_id]
        if len(remaining) != len(history):
            await self.records.save(remaining)
