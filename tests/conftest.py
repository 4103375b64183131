import asyncio
from typing import Dict, Iterable, List, Optional

import numpy as np
import pytest
from fastapi.testclient import TestClient

from database.memory import InMemoryDocumentStore, InMemoryKeyValueStore
from main import app
from models.embedding_provider import DetectedFace, EmbeddingProvider, InvalidImageError, ProviderError
from services.container import build_services, get_services


class FakeEmbeddingProvider(EmbeddingProvider):
    """
    Maps image bytes to canned embeddings.

    Unknown images yield no faces, images in `failing` raise ProviderError
    and b"not-an-image" raises InvalidImageError.
    """

    def __init__(self, faces: Dict[bytes, List[List[float]]] = None, failing: Iterable[bytes] = ()):
        self.faces = dict(faces or {})
        self.failing = set(failing)
        self.calls: List[bytes] = []

    async def extract_embeddings(self, image: bytes) -> List[DetectedFace]:
        self.calls.append(image)
        await asyncio.sleep(0)
        if image in self.failing:
            raise ProviderError("model crashed")
        if image == b"not-an-image":
            raise InvalidImageError("Image could not be decoded")
        return [
            DetectedFace(embedding=np.asarray(vector, dtype=np.float64), box=[i, i, i + 10, i + 10])
            for i, vector in enumerate(self.faces.get(image, []))
        ]


DEFAULT_FACES = {
    b"alice-1": [[0.0, 0.0, 0.0, 0.0]],
    b"alice-2": [[0.1, 0.0, 0.0, 0.0]],
    b"bob-1": [[1.0, 1.0, 0.0, 0.0]],
    b"crowd": [[0.05, 0.0, 0.0, 0.0], [5.0, 5.0, 5.0, 5.0]],
    b"far": [[0.7, 0.0, 0.0, 0.0]],
    b"empty": [],
}


@pytest.fixture
def provider() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider(DEFAULT_FACES, failing=[b"boom"])


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    # latency=0 yields on every call so concurrent operations interleave
    return InMemoryKeyValueStore(latency=0)


@pytest.fixture
def document_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore(latency=0)


@pytest.fixture
def services(kv_store, document_store, provider):
    return build_services(kv_store, document_store, provider, threshold=0.6)


@pytest.fixture
def client(services):
    app.dependency_overrides[get_services] = lambda: services
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth():
    def headers(user_id: Optional[str]) -> Dict[str, str]:
        return {"X-User-Id": user_id} if user_id else {}
    return headers
