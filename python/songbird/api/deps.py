"""FastAPI dependencies for route handlers.

Tests swap these out through app.dependency_overrides.
"""

from songbird.db.session import get_db, get_session_factory
from songbird.storage.client import StorageClientBase, get_storage_client

__all__ = ["get_db", "get_session_factory", "get_storage"]


def get_storage() -> StorageClientBase:
    """The process-wide storage client (Supabase Storage, or the in-memory fake)."""
    return get_storage_client()
