"""
Service wiring.

Every service receives its stores and provider at construction. The
API resolves the shared container through get_services(), which tests
replace with in-memory stores via FastAPI dependency overrides.
"""

from dataclasses import dataclass
from typing import Optional

from database.document_store import DocumentStore
from database.kv_store import KeyValueStore
from models.embedding_provider import EmbeddingProvider
from .binding_registry import BindingRegistry
from .enrollment import EnrollmentPipeline
from .location_relay import LocationRelay
from .recognition import RecognitionService
from .template_store import TemplateStore


@dataclass
class ServiceContainer:
    registry: BindingRegistry
    relay: LocationRelay
    templates: TemplateStore
    enrollment: EnrollmentPipeline
    recognition: RecognitionService
    provider: EmbeddingProvider


def build_services(
    kv_store: KeyValueStore,
    document_store: DocumentStore,
    provider: EmbeddingProvider,
    threshold: float = None
) -> ServiceContainer:
    registry = BindingRegistry(kv_store)
    templates = TemplateStore(document_store)
    return ServiceContainer(
        registry=registry,
        relay=LocationRelay(kv_store, registry),
        templates=templates,
        enrollment=EnrollmentPipeline(templates, provider),
        recognition=RecognitionService(registry, templates, provider, threshold=threshold),
        provider=provider
    )


_container: Optional[ServiceContainer] = None


def set_services(container: Optional[ServiceContainer]):
    global _container
    _container = container


def get_services() -> ServiceContainer:
    """
    Get the shared ServiceContainer, building the SQL-backed default on
    first use.
    """
    global _container
    if _container is None:
        from database.connection import get_session_factory
        from database.document_store import SqlDocumentStore
        from database.kv_store import SqlKeyValueStore
        from models.embedding_provider import InsightFaceEmbeddingProvider

        factory = get_session_factory()
        _container = build_services(
            SqlKeyValueStore(factory),
            SqlDocumentStore(factory),
            InsightFaceEmbeddingProvider()
        )
    return _container
