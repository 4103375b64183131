"""
Template Store

Per-user face templates kept in the document store:

    {
        "userId": "...",
        "faces": [{"id": "...", "label": "Alice", "embeddings": [[...], ...], "createdAt": "..."}],
        "detectedFaces": ["Alice", "unknown"]
    }
"""

import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

import numpy as np

from database.document_store import DocumentStore
from utils.keyed_lock import KeyedLock


def _user_filter(user_id: str) -> Dict:
    return {'userId': user_id}


def new_user_document(user_id: str) -> Dict:
    return {'userId': user_id, 'faces': [], 'detectedFaces': []}


class TemplateStore:
    """Owns every user's face template collection and cached detections."""

    def __init__(self, document_store: DocumentStore):
        self._documents = document_store
        self._create_locks = KeyedLock()

    async def get_record(self, user_id: str) -> Optional[Dict]:
        return await self._documents.find_one(_user_filter(user_id))

    async def ensure_record(self, user_id: str) -> Dict:
        """Return the user's document, creating an empty one if missing."""
        record = await self.get_record(user_id)
        if record is not None:
            return record

        async with self._create_locks.acquire(user_id):
            record = await self.get_record(user_id)
            if record is None:
                record = new_user_document(user_id)
                await self._documents.save(record)
        return record

    async def add_template(self, user_id: str, label: str, embeddings: List[np.ndarray]) -> Dict:
        """Append a new template to the user's collection."""
        template = {
            'id': uuid.uuid4().hex,
            'label': label,
            'embeddings': [np.asarray(e, dtype=np.float64).ravel().tolist() for e in embeddings],
            'createdAt': datetime.now(timezone.utc).isoformat()
        }
        if not await self._documents.update_one(_user_filter(user_id), {'$push': {'faces': template}}):
            await self.ensure_record(user_id)
            await self._documents.update_one(_user_filter(user_id), {'$push': {'faces': template}})
        return template

    async def remove_template(self, user_id: str, face_id: str) -> bool:
        """
        Remove the template with face_id.

        Returns False when the user has no document; a face_id that matches
        nothing is not an error.
        """
        return bool(await self._documents.update_one(
            _user_filter(user_id), {'$pull': {'faces': {'id': face_id}}}
        ))

    async def set_detected_faces(self, user_id: str, labels: List[str]):
        if not await self._documents.update_one(_user_filter(user_id), {'$set': {'detectedFaces': list(labels)}}):
            await self.ensure_record(user_id)
            await self._documents.update_one(_user_filter(user_id), {'$set': {'detectedFaces': list(labels)}})
