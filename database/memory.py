"""
In-memory store implementations.

Used by the test suite and for running the API without a database.
Values are deep-copied on the way in and out, like a real backend.
"""

import asyncio
import copy
from typing import Any, Dict, Optional

from .document_store import DocumentStore, KEY_FIELD, apply_update, matches_filter
from .kv_store import KeyValueStore


class InMemoryKeyValueStore(KeyValueStore):
    """
    Dict-backed key-value store.

    Args:
        latency: Seconds to sleep before every call (0 still yields to the
            event loop, which lets tests interleave concurrent operations)
    """

    def __init__(self, latency: Optional[float] = None):
        self.data: Dict[str, Any] = {}
        self.latency = latency

    async def _pause(self):
        if self.latency is not None:
            await asyncio.sleep(self.latency)

    async def exists(self, path: str) -> bool:
        await self._pause()
        return path in self.data

    async def get(self, path: str) -> Optional[Any]:
        await self._pause()
        return copy.deepcopy(self.data.get(path))

    async def set(self, path: str, value: Optional[Any]):
        await self._pause()
        if value is None:
            self.data.pop(path, None)
        else:
            self.data[path] = copy.deepcopy(value)


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed document store keyed by userId."""

    def __init__(self, latency: Optional[float] = None):
        self.documents: Dict[str, Dict] = {}
        self.latency = latency

    async def _pause(self):
        if self.latency is not None:
            await asyncio.sleep(self.latency)

    def _find(self, filter: Dict) -> Optional[Dict]:
        key = filter.get(KEY_FIELD)
        if key is not None:
            candidates = [self.documents[key]] if key in self.documents else []
        else:
            candidates = list(self.documents.values())
        for document in candidates:
            if matches_filter(document, filter):
                return document
        return None

    async def find_one(self, filter: Dict) -> Optional[Dict]:
        await self._pause()
        return copy.deepcopy(self._find(filter))

    async def save(self, document: Dict):
        await self._pause()
        key = document.get(KEY_FIELD)
        if key is None:
            raise ValueError(f"Document must contain {KEY_FIELD}")
        self.documents[key] = copy.deepcopy(document)

    async def update_one(self, filter: Dict, update: Dict) -> int:
        await self._pause()
        document = self._find(filter)
        if document is None:
            return 0
        self.documents[document[KEY_FIELD]] = apply_update(document, update)
        return 1
