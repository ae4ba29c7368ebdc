"""Local durable key-value storage and the JSON-array record stores built on it.

Each logical store keeps its whole record set as one JSON array under a
versioned key (``sessions:v1``...). Reads validate every record and drop the
ones that fail; writes replace the whole array. The version suffix ties the
validator to one on-disk shape: a breaking change gets a new key and a
migration branch, never a silent reinterpretation of old data.
"""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Generic, Optional, TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import SQLAlchemyError

from core.db import init_db, session_scope
from core.models import KeyValueItem

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


class StorageError(RuntimeError):
    """Raised when the underlying storage cannot be read or written."""


class KeyValueStorage(ABC):
    @abstractmethod
    async def get_item(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def set_item(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    async def remove_item(self, key: str) -> None:
        ...


class InMemoryStorage(KeyValueStorage):
    """Process-local storage, used by tests and ephemeral runs."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._items: dict[str, str] = dict(initial or {})

    async def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    async def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class SqlKeyValueStorage(KeyValueStorage):
    """Key-value storage backed by the ``kv_items`` table."""

    def __init__(self, url: Optional[str] = None):
        self.url = url
        init_db(url)

    # sync helpers, run via asyncio.to_thread

    def _read(self, key: str) -> Optional[str]:
        with session_scope(self.url) as s:
            row = s.get(KeyValueItem, key)
            return row.value if row is not None else None

    def _write(self, key: str, value: str) -> None:
        with session_scope(self.url) as s:
            row = s.get(KeyValueItem, key)
            if row is None:
                s.add(KeyValueItem(key=key, value=value))
            else:
                row.value = value

    def _delete(self, key: str) -> None:
        with session_scope(self.url) as s:
            row = s.get(KeyValueItem, key)
            if row is not None:
                s.delete(row)

    async def get_item(self, key: str) -> Optional[str]:
        try:
            return await asyncio.to_thread(self._read, key)
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to read {key}") from exc

    async def set_item(self, key: str, value: str) -> None:
        try:
            await asyncio.to_thread(self._write, key, value)
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to write {key}") from exc

    async def remove_item(self, key: str) -> None:
        try:
            await asyncio.to_thread(self._delete, key)
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to remove {key}") from exc


class JsonArrayStore(Generic[RecordT]):
    """Whole-array read-modify-write store of validated records.

    Last writer wins: overlapping writers each rewrite the full array.
    """

    storage_key: ClassVar[str]
    record_model: ClassVar[type[BaseModel]]

    def __init__(self, storage: KeyValueStorage):
        self.storage = storage
        self._pending_writes: set[asyncio.Task] = set()

    def validate(self, item: Any) -> Optional[RecordT]:
        if not isinstance(item, dict):
            return None
        try:
            return self.record_model.model_validate(item)  # type: ignore[return-value]
        except ValidationError:
            return None

    async def load_raw(self) -> list[Any]:
        """Deserialised array, or [] when storage fails or holds anything else."""
        try:
            data = await self.storage.get_item(self.storage_key)
        except StorageError as exc:
            logger.warning("Failed to read %s from storage: %s", self.storage_key, exc)
            return []
        if not data:
            return []
        try:
            parsed = json.loads(data)
        except ValueError:
            logger.warning("Corrupt JSON under %s, ignoring stored records", self.storage_key)
            return []
        if not isinstance(parsed, list):
            logger.warning("Expected a JSON array under %s, got %s", self.storage_key, type(parsed).__name__)
            return []
        return parsed

    async def load(self) -> list[RecordT]:
        validated: list[RecordT] = []
        for item in await self.load_raw():
            record = self.validate(item)
            if record is None:
                logger.warning("Invalid record found under %s, skipping: %r", self.storage_key, item)
                continue
            validated.append(record)
        return validated

    async def save(self, records: list[RecordT]) -> None:
        """Replace the stored array; queued background writes land first so they cannot overwrite it."""
        await self.wait_for_pending_writes()
        await self._write(records)

    async def _write(self, records: list[RecordT]) -> None:
        payload = json.dumps([r.to_record() for r in records], ensure_ascii=False)  # type: ignore[attr-defined]
        await self.storage.set_item(self.storage_key, payload)

    def save_in_background(self, records: list[RecordT]) -> None:
        """Fire-and-forget save; a failure is logged, never raised to the reader."""
        task = asyncio.create_task(self._write(list(records)))
        self._pending_writes.add(task)
        task.add_done_callback(self._on_background_write_done)

    def _on_background_write_done(self, task: asyncio.Task) -> None:
        self._pending_writes.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Background write of %s failed: %s", self.storage_key, exc)

    async def wait_for_pending_writes(self) -> None:
        if self._pending_writes:
            await asyncio.gather(*list(self._pending_writes), return_exceptions=True)
