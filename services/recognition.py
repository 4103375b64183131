"""
Face recognition for tracking devices.

device id -> bound user -> user's templates -> matcher -> labels cached
on the user record as detectedFaces.
"""

import logging
from typing import Optional

from config import MATCH_THRESHOLD
from models.embedding_provider import EmbeddingProvider
from models.face_matcher import FaceMatcher
from .binding_registry import BindingRegistry
from .results import ErrorKind, OperationResult, ServiceError, returns_result
from .template_store import TemplateStore

logger = logging.getLogger(__name__)


class RecognitionService:

    def __init__(
        self,
        registry: BindingRegistry,
        template_store: TemplateStore,
        provider: EmbeddingProvider,
        threshold: float = None
    ):
        self._registry = registry
        self._templates = template_store
        self._provider = provider
        self._threshold = MATCH_THRESHOLD if threshold is None else threshold

    @property
    def threshold(self) -> float:
        return self._threshold

    @returns_result("Recognise face")
    async def recognise_face(self, device_id: Optional[str], probe_image: bytes) -> OperationResult:
        if not device_id:
            raise ServiceError(ErrorKind.NOT_FOUND, "Device id is required")

        user_id = await self._registry.resolve_user_by_device(device_id)
        if user_id is None:
            raise ServiceError(ErrorKind.NOT_FOUND, "No user is bound to this device")

        record = await self._templates.get_record(user_id)
        if record is None:
            raise ServiceError(ErrorKind.UNAUTHORIZED, "No enrolled faces for this user")

        matcher = FaceMatcher.from_templates(record.get('faces', []), threshold=self._threshold)
        faces = await self._provider.extract_embeddings(probe_image)
        results = matcher.match_all([face.embedding for face in faces])

        labels = [result.label for result in results]
        await self._templates.set_detected_faces(user_id, labels)
        logger.info(f"Device {device_id}: {len(results)} face(s) detected -> {labels}")

        matches = []
        for face, result in zip(faces, results):
            match = result.to_dict()
            match['box'] = face.box
            matches.append(match)
        return OperationResult.ok(f"{len(matches)} face(s) detected", data=matches)

    @returns_result("Get detected faces")
    async def get_detected_faces(self, user_id: str) -> OperationResult:
        record = await self._templates.get_record(user_id)
        labels = record.get('detectedFaces', []) if record else []
        return OperationResult.ok("Detected faces", data=labels)

    @returns_result("Reset detected faces")
    async def reset_detected_faces(self, user_id: str) -> OperationResult:
        await self._templates.set_detected_faces(user_id, [])
        return OperationResult.ok("Detected faces reset")
