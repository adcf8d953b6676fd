"""Storage module for Supabase Storage operations.

Provides:
- Storage client for put/remove/list/public-URL operations on named buckets
- Storage key building utilities
"""

from songbird.storage.client import (
    FakeStorageClient,
    RemovalOutcome,
    StorageClient,
    StorageClientBase,
    StorageError,
    StoredObject,
    get_storage_client,
)
from songbird.storage.paths import build_storage_key

__all__ = [
    "FakeStorageClient",
    "RemovalOutcome",
    "StorageClient",
    "StorageClientBase",
    "StorageError",
    "StoredObject",
    "build_storage_key",
    "get_storage_client",
]
