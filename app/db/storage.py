"""
app/db/storage.py

Purpose: Durable key-value stores for the session

- One small interface: get_many / set_many / delete_many
- Memory backend (tests, throwaway sessions)
- JSON file backend (atomic replace on every write)
- MongoDB backend (one document per key, via Motor)
"""

import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, Optional

from pymongo import DeleteMany, UpdateOne

from app.core.logging import get_logger

logger = get_logger(__name__)


class KeyValueStore(ABC):
    """
    Minimal async key-value interface the session store persists through.
    Values are strings; multi-key writes and deletes are applied together.
    """

    @abstractmethod
    async def get_many(self, keys: Iterable[str]) -> Dict[str, Optional[str]]:
        ...

    @abstractmethod
    async def set_many(self, items: Dict[str, str]) -> None:
        ...

    @abstractmethod
    async def delete_many(self, keys: Iterable[str]) -> None:
        ...

    async def close(self) -> None:
        return None


class MemoryKeyValueStore(KeyValueStore):
    """Process-local store; survives SessionStore re-creation, not restarts."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    async def get_many(self, keys: Iterable[str]) -> Dict[str, Optional[str]]:
        return {key: self.data.get(key) for key in keys}

    async def set_many(self, items: Dict[str, str]) -> None:
        self.data.update(items)

    async def delete_many(self, keys: Iterable[str]) -> None:
        for key in keys:
            self.data.pop(key, None)


class JsonFileKeyValueStore(KeyValueStore):
    """
    Stores all keys in one JSON file.

    Every write rewrites the file through a temp file and os.replace, so a
    crash leaves either the previous or the new content on disk.
    """

    def __init__(self, path: str):
        self.path = Path(path)

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Session file unreadable, starting empty: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning("Session file has unexpected structure, starting empty")
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _write(self, data: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self.path.parent), prefix=".session-", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    async def get_many(self, keys: Iterable[str]) -> Dict[str, Optional[str]]:
        data = self._read()
        return {key: data.get(key) for key in keys}

    async def set_many(self, items: Dict[str, str]) -> None:
        data = self._read()
        data.update(items)
        self._write(data)

    async def delete_many(self, keys: Iterable[str]) -> None:
        data = self._read()
        for key in keys:
            data.pop(key, None)
        self._write(data)


class MongoKeyValueStore(KeyValueStore):
    """
    Stores each key as {"_id": key, "value": str} in a Motor collection.
    """

    def __init__(self, collection):
        self.collection = collection

    async def get_many(self, keys: Iterable[str]) -> Dict[str, Optional[str]]:
        keys = list(keys)
        result: Dict[str, Optional[str]] = {key: None for key in keys}
        async for doc in self.collection.find({"_id": {"$in": keys}}):
            result[doc["_id"]] = doc.get("value")
        return result

    async def set_many(self, items: Dict[str, str]) -> None:
        if not items:
            return
        operations = [
            UpdateOne({"_id": key}, {"$set": {"value": value}}, upsert=True)
            for key, value in items.items()
        ]
        await self.collection.bulk_write(operations, ordered=True)

    async def delete_many(self, keys: Iterable[str]) -> None:
        keys = list(keys)
        if not keys:
            return
        await self.collection.bulk_write([DeleteMany({"_id": {"$in": keys}})])

    async def close(self) -> None:
        from app.db.mongo import close_mongo_connection

        await close_mongo_connection()


async def build_storage(config) -> KeyValueStore:
    """
    Creates the key-value store selected by SESSION_BACKEND.

    Args:
        config: Settings instance

    Returns:
        Ready-to-use KeyValueStore
    """
    backend = config.SESSION_BACKEND

    if backend == "memory":
        logger.info("Using in-memory session storage")
        return MemoryKeyValueStore()

    if backend == "file":
        logger.info(f"Using file session storage: {config.SESSION_FILE_PATH}")
        return JsonFileKeyValueStore(config.SESSION_FILE_PATH)

    if backend == "mongo":
        from app.db.mongo import connect_to_mongo, get_session_collection

        await connect_to_mongo(config)
        logger.info("Using MongoDB session storage")
        return MongoKeyValueStore(get_session_collection())

    raise ValueError(f"Unknown session backend: {backend}")
