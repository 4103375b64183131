"""
Key-Value Store

Path-addressed storage used by the binding registry and the location
relay. Setting a path to None removes it.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from utils.keyed_lock import KeyedLock
from .models import KeyValueEntry


class KeyValueStore(ABC):
    """Contract for the path-addressed key-value store."""

    @abstractmethod
    async def exists(self, path: str) -> bool:
        ...

    @abstractmethod
    async def get(self, path: str) -> Optional[Any]:
        ...

    @abstractmethod
    async def set(self, path: str, value: Optional[Any]):
        ...


class SqlKeyValueStore(KeyValueStore):
    """
    Key-value store persisted in the kv_entries table.

    Each call runs in its own short transaction. Writes to the same path
    are serialized so concurrent upserts cannot race on the insert.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory
        self._write_locks = KeyedLock()

    async def exists(self, path: str) -> bool:
        async with self._session_factory() as session:
            return await session.get(KeyValueEntry, path) is not None

    async def get(self, path: str) -> Optional[Any]:
        async with self._session_factory() as session:
            entry = await session.get(KeyValueEntry, path)
            return entry.value if entry is not None else None

    async def set(self, path: str, value: Optional[Any]):
        async with self._write_locks.acquire(path):
            async with self._session_factory() as session:
                async with session.begin():
                    entry = await session.get(KeyValueEntry, path)
                    if value is None:
                        if entry is not None:
                            await session.delete(entry)
                    elif entry is None:
                        session.add(KeyValueEntry(path=path, value=value))
                    else:
                        entry.value = value
