"""
Enrollment Pipeline

Multi-sample capture -> embedding extraction -> template persistence,
plus listing and deleting a user's enrolled faces.
"""

import asyncio
import logging
from typing import List, Sequence

from models.embedding_provider import DetectedFace, EmbeddingProvider
from .results import ErrorKind, OperationResult, ServiceError, returns_result
from .template_store import TemplateStore

logger = logging.getLogger(__name__)


class EnrollmentPipeline:
    """Enrolls labelled faces for a user and manages the enrolled set."""

    def __init__(self, template_store: TemplateStore, provider: EmbeddingProvider):
        self._templates = template_store
        self._provider = provider

    @returns_result("Enroll face")
    async def enroll_face(self, user_id: str, label: str, sample_images: Sequence[bytes]) -> OperationResult:
        """
        Create one template from all usable samples.

        Samples without a detected face are skipped and reported as
        warnings. When a sample contains several faces the provider's
        first (largest) face is used.
        """
        label = (label or "").strip()
        if not label:
            raise ServiceError(ErrorKind.INVALID_ARGUMENT, "Label is required")
        if not sample_images:
            raise ServiceError(ErrorKind.INVALID_ARGUMENT, "At least one sample image is required")

        detections = await self._extract_all(sample_images)

        embeddings = []
        skipped: List[int] = []
        for index, faces in enumerate(detections):
            if not faces:
                logger.warning(f"No face detected in sample {index} for user {user_id}, skipping")
                skipped.append(index)
                continue
            embeddings.append(faces[0].embedding)

        if not embeddings:
            raise ServiceError(ErrorKind.INVALID_ARGUMENT, "No face detected in any sample image")

        template = await self._templates.add_template(user_id, label, embeddings)
        logger.info(f"Enrolled '{label}' for user {user_id} from {len(embeddings)} sample(s)")

        return OperationResult.ok(
            "Face enrolled",
            data={
                'id': template['id'],
                'label': template['label'],
                'samples_used': len(embeddings),
                'skipped_samples': skipped
            },
            warnings=[f"No face detected in sample {index}" for index in skipped]
        )

    async def _extract_all(self, sample_images: Sequence[bytes]) -> List[List[DetectedFace]]:
        """
        Extract every sample concurrently, results in input order.

        If one extraction fails the others are cancelled and awaited
        before the error propagates.
        """
        tasks = [asyncio.ensure_future(self._provider.extract_embeddings(image)) for image in sample_images]
        try:
            return await asyncio.gather(*tasks)
        except Exception:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    @returns_result("List faces")
    async def list_faces(self, user_id: str) -> OperationResult:
        """Enrolled faces without embeddings. Creates an empty record for new users."""
        record = await self._templates.ensure_record(user_id)
        faces = [{'id': face['id'], 'label': face['label']} for face in record.get('faces', [])]
        return OperationResult.ok(f"{len(faces)} face(s) enrolled", data=faces)

    @returns_result("Delete face")
    async def delete_face(self, user_id: str, face_id: str) -> OperationResult:
        if not await self._templates.remove_template(user_id, face_id):
            raise ServiceError(ErrorKind.NOT_FOUND, "No enrolled faces for this user")
        logger.info(f"Deleted face {face_id} of user {user_id}")
        return OperationResult.ok("Face deleted")
