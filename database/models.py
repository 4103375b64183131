"""
SQLAlchemy Models backing the key-value and document stores.
"""

from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, String
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class KeyValueEntry(Base):
    """
    Path-addressed values of the key-value store.

    Attributes:
        path: Slash separated key, e.g. "device-user/AB12CD"
        value: Any JSON value (string, bool, list of location reports...)
        updated_at: Last write timestamp
    """
    __tablename__ = "kv_entries"

    path = Column(String(255), primary_key=True)
    value = Column(JSON, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<KeyValueEntry(path='{self.path}')>"


class UserDocument(Base):
    """
    One document per user: enrolled face templates and cached detections.

    Attributes:
        user_id: Owner of the document (from the auth collaborator)
        document: Full JSON document ({userId, faces, detectedFaces})
        updated_at: Last write timestamp
    """
    __tablename__ = "user_documents"

    user_id = Column(String(128), primary_key=True)
    document = Column(JSON, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<UserDocument(user_id='{self.user_id}')>"
