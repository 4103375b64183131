# Database package
from .connection import get_async_engine, get_session_factory, init_database, close_database, test_connection
from .document_store import DocumentStore, SqlDocumentStore
from .kv_store import KeyValueStore, SqlKeyValueStore
from .memory import InMemoryDocumentStore, InMemoryKeyValueStore
from .models import Base, KeyValueEntry, UserDocument

__all__ = [
    "get_async_engine", "get_session_factory", "init_database", "close_database", "test_connection",
    "DocumentStore", "SqlDocumentStore", "KeyValueStore", "SqlKeyValueStore",
    "InMemoryDocumentStore", "InMemoryKeyValueStore",
    "Base", "KeyValueEntry", "UserDocument",
]
