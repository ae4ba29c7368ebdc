"""Tests for the runner profile, reference paces and test record history."""

from __future__ import annotations

import json

import pytest

from core.services.profile_store import (
    PROFILE_STORAGE_KEY,
    REFERENCE_PACES_STORAGE_KEY,
    TEST_RECORDS_STORAGE_KEY,
    InvalidRecordError,
    ProfileStore,
)
from core.storage import InMemoryStorage
from core.validators import ReferencePaces, RunnerProfile


@pytest.mark.asyncio
async def test_profile_roundtrip():
    storage = InMemoryStorage()
    store = ProfileStore(storage)
    assert await store.get_profile() is None
    await store.save_profile(RunnerProfile(name="Camille", club_name="Marina Runners", default_group="B"))
    profile = await store.get_profile()
    assert profile.club_name == "Marina Runners"
    assert json.loads(await storage.get_item(PROFILE_STORAGE_KEY))["clubName"] == "Marina Runners"


@pytest.mark.asyncio
async def test_corrupt_profile_reads_as_none():
    store = ProfileStore(InMemoryStorage({PROFILE_STORAGE_KEY: "{oops"}))
    assert await store.get_profile() is None


@pytest.mark.asyncio
async def test_reference_paces_roundtrip():
    storage = InMemoryStorage()
    store = ProfileStore(storage)
    await store.save_reference_paces(ReferencePaces(easy_min=330, easy_max=360))
    assert json.loads(await storage.get_item(REFERENCE_PACES_STORAGE_KEY)) == {"easyMin": 330, "easyMax": 360}
    assert (await store.get_reference_paces()).easy_max == 360


@pytest.mark.asyncio
async def test_invalid_reference_paces_read_as_none():
    store = ProfileStore(InMemoryStorage({REFERENCE_PACES_STORAGE_KEY: '{"easyMin": -5}'}))
    assert await store.get_reference_paces() is None


@pytest.mark.asyncio
async def test_save_test_record_normalises():
    store = ProfileStore(InMemoryStorage())
    saved = await store.save_test_record({
        "kind": "distance",
        "label": "5K",
        "mode": "time_over_distance",
        "distanceMeters": 5000,
        "durationSeconds": 1250,
    })
    assert saved.id
    assert saved.label == "5 km"
    assert saved.pace_seconds_per_km == 250
    assert saved.created_at > 0


@pytest.mark.asyncio
async def test_save_test_record_invalid():
    store = ProfileStore(InMemoryStorage())
    with pytest.raises(InvalidRecordError):
        await store.save_test_record({"kind": "sprint", "label": "x"})
    assert await store.get_all_test_records() == []


@pytest.mark.asyncio
async def test_history_keeps_every_attempt_newest_first():
    store = ProfileStore(InMemoryStorage())
    for created_at, seconds in ((1, 1300), (3, 1250), (2, 1400)):
        await store.save_test_record({
            "id": f"r{created_at}",
            "kind": "distance",
            "label": "5 km",
            "mode": "time_over_distance",
            "distanceMeters": 5000,
            "durationSeconds": seconds,
            "createdAt": created_at,
        })
    history = await store.get_all_test_records()
    assert [r.id for r in history] == ["r3", "r2", "r1"]
    bests = await store.get_test_records()
    assert [r.id for r in bests] == ["r3"]


@pytest.mark.asyncio
async def test_delete_test_record():
    storage = InMemoryStorage()
    store = ProfileStore(storage)
    await store.save_test_record({"id": "r1", "kind": "duration", "label": "Cooper", "mode": "distance_over_time", "durationSeconds": 720, "distanceMeters": 3000})
    await store.delete_test_record("r1")
    await store.delete_test_record("r1")
    assert json.loads(await storage.get_item(TEST_RECORDS_STORAGE_KEY)) == []
