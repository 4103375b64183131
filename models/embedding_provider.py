"""
Embedding Provider

Turns a raw image into zero or more face embeddings. The matcher and
the enrollment pipeline only see this contract; the default
implementation runs InsightFace (ArcFace) models.
"""

import asyncio
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

try:
    from insightface.app import FaceAnalysis
    INSIGHTFACE_AVAILABLE = True
except ImportError:
    INSIGHTFACE_AVAILABLE = False

from config import DETECTION_SIZE, DEVICE, FACE_MODEL_NAME
from utils.image_utils import load_image_from_bytes

logger = logging.getLogger(__name__)

if not INSIGHTFACE_AVAILABLE:
    logger.warning("insightface not installed. Face embedding extraction will not work.")


class ProviderError(Exception):
    """Embedding extraction failed inside the provider."""


class InvalidImageError(ProviderError):
    """The submitted bytes could not be decoded as an image."""


@dataclass
class DetectedFace:
    """A face found in an image together with its identity embedding."""
    embedding: np.ndarray
    box: Optional[List[int]] = None
    landmarks: Optional[List[List[float]]] = None
    det_score: Optional[float] = None


class EmbeddingProvider(ABC):
    """Contract: image bytes -> ordered list of detected faces."""

    @property
    def is_available(self) -> bool:
        return True

    @abstractmethod
    async def extract_embeddings(self, image: bytes) -> List[DetectedFace]:
        """
        Detect faces and extract one embedding per face.

        Raises:
            InvalidImageError: if the image cannot be decoded
            ProviderError: on any other extraction failure
        """
        ...


class InsightFaceEmbeddingProvider(EmbeddingProvider):
    """
    Embedding provider using InsightFace with ArcFace model

    The model pack is loaded on first use. Inference runs in a worker
    thread so the event loop keeps serving other requests.
    """

    def __init__(self, model_name: str = None, device: str = None, det_size=None):
        """
        Args:
            model_name: InsightFace model name ('buffalo_l', 'buffalo_s', etc.)
            device: 'cpu' or 'cuda'
            det_size: Detector input size
        """
        self.model_name = model_name or FACE_MODEL_NAME
        self.device = device or DEVICE
        self.det_size = det_size or DETECTION_SIZE
        self._app = None
        self._load_lock = threading.Lock()

    @property
    def is_available(self) -> bool:
        return INSIGHTFACE_AVAILABLE

    def _get_app(self):
        if not INSIGHTFACE_AVAILABLE:
            raise ProviderError("InsightFace not available. Please install insightface.")

        with self._load_lock:
            if self._app is None:
                providers = ['CPUExecutionProvider']
                if self.device == 'cuda':
                    providers = ['CUDAExecutionProvider', 'CPUExecutionProvider']

                app = FaceAnalysis(name=self.model_name, providers=providers)
                ctx_id = 0 if self.device == 'cuda' else -1
                app.prepare(ctx_id=ctx_id, det_size=self.det_size)
                self._app = app
                logger.info(f"InsightFace model '{self.model_name}' loaded on {self.device}")
        return self._app

    def _extract(self, image: bytes) -> List[DetectedFace]:
        decoded = load_image_from_bytes(image)
        if decoded is None:
            raise InvalidImageError("Image could not be decoded")

        app = self._get_app()
        try:
            faces = app.get(decoded)
        except Exception as e:
            raise ProviderError(f"Face analysis failed: {e}") from e

        # Largest face first
        faces = sorted(faces, key=lambda x: (x.bbox[2] - x.bbox[0]) * (x.bbox[3] - x.bbox[1]), reverse=True)

        results = []
        for face in faces:
            kps = getattr(face, 'kps', None)
            results.append(DetectedFace(
                embedding=np.asarray(face.normed_embedding, dtype=np.float32),
                box=[int(coord) for coord in face.bbox],
                landmarks=kps.tolist() if kps is not None else None,
                det_score=float(face.det_score) if hasattr(face, 'det_score') else None
            ))
        return results

    async def extract_embeddings(self, image: bytes) -> List[DetectedFace]:
        return await asyncio.to_thread(self._extract, image)
