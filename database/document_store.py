"""
Document Store

One JSON document per user, keyed by "userId". Updates use a small
Mongo-style operator set:

    {"$set":  {"detectedFaces": ["Alice"]}}
    {"$push": {"faces": {...}}}
    {"$pull": {"faces": {"id": "..."}}}
"""

import copy
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from utils.keyed_lock import KeyedLock
from .models import UserDocument

KEY_FIELD = "userId"

SUPPORTED_OPERATORS = ("$set", "$push", "$pull")


def matches_filter(document: Dict, filter: Dict) -> bool:
    """Equality match on every field of the filter."""
    return all(document.get(field) == value for field, value in filter.items())


def _matches_item(item: Any, condition: Any) -> bool:
    if isinstance(condition, dict) and isinstance(item, dict):
        return matches_filter(item, condition)
    return item == condition


def apply_update(document: Dict, update: Dict) -> Dict:
    """
    Apply update operators to a copy of the document.

    Raises:
        ValueError: on an unsupported operator or a non-list $push/$pull target
    """
    updated = copy.deepcopy(document)

    for operator, fields in update.items():
        if operator not in SUPPORTED_OPERATORS:
            raise ValueError(f"Unsupported update operator: {operator}")

        for field, value in fields.items():
            if field == KEY_FIELD:
                raise ValueError(f"Field {KEY_FIELD} cannot be updated")

            if operator == "$set":
                updated[field] = copy.deepcopy(value)
                continue

            items = updated.setdefault(field, [])
            if not isinstance(items, list):
                raise ValueError(f"Field {field} is not a list")

            if operator == "$push":
                items.append(copy.deepcopy(value))
            else:
                updated[field] = [item for item in items if not _matches_item(item, value)]

    return updated


class DocumentStore(ABC):
    """Contract for the per-user document store."""

    @abstractmethod
    async def find_one(self, filter: Dict) -> Optional[Dict]:
        ...

    @abstractmethod
    async def save(self, document: Dict):
        """Insert or replace the document identified by its userId."""
        ...

    @abstractmethod
    async def update_one(self, filter: Dict, update: Dict) -> int:
        """Apply update operators to the first matching document, return matched count."""
        ...


def _require_key(filter: Dict) -> str:
    key = filter.get(KEY_FIELD)
    if key is None:
        raise ValueError(f"Filter must contain {KEY_FIELD}")
    return key


class SqlDocumentStore(DocumentStore):
    """
    Document store persisted in the user_documents table.

    Updates are read-modify-write inside one transaction, serialized per
    userId.
    """

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory
        self._write_locks = KeyedLock()

    async def find_one(self, filter: Dict) -> Optional[Dict]:
        key = _require_key(filter)
        async with self._session_factory() as session:
            row = await session.get(UserDocument, key)
            if row is None or not matches_filter(row.document, filter):
                return None
            return copy.deepcopy(row.document)

    async def save(self, document: Dict):
        key = _require_key(document)
        async with self._write_locks.acquire(key):
            async with self._session_factory() as session:
                async with session.begin():
                    row = await session.get(UserDocument, key)
                    if row is None:
                        session.add(UserDocument(user_id=key, document=copy.deepcopy(document)))
                    else:
                        row.document = copy.deepcopy(document)

    async def update_one(self, filter: Dict, update: Dict) -> int:
        key = _require_key(filter)
        async with self._write_locks.acquire(key):
            async with self._session_factory() as session:
                async with session.begin():
                    row = await session.get(UserDocument, key)
                    if row is None or not matches_filter(row.document, filter):
                        return 0
                    row.document = apply_update(row.document, update)
                    return 1
