"""Supabase Storage client abstraction.

Provides a clean interface for blob operations across named buckets:
- Object upload (put_object)
- Bulk, idempotent removal (remove_objects)
- Object existence checks (head_object)
- Bucket listing (list_objects)
- Public URL resolution (get_public_url)

All methods receive the bucket and the full object key directly - no prefix
manipulation. Every remote call carries an explicit timeout.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import lru_cache

import httpx

from songbird.config import get_settings
from songbird.logging import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT_S = 30.0
DEFAULT_UPLOAD_TIMEOUT_S = 120.0
CACHE_CONTROL_SECONDS = 3600
LIST_PAGE_SIZE = 100


@dataclass(frozen=True)
class StoredObject:
    """Result of a successful upload."""

    bucket: str
    key: str


@dataclass(frozen=True)
class ObjectMetadata:
    """Storage object metadata.

    Advisory only - do not trust for security validation.
    Only reliable signal is existence (None vs not-None from head_object).
    """

    content_type: str
    size_bytes: int


@dataclass(frozen=True)
class RemovalOutcome:
    """Settled outcome of removing one key. A missing key counts as ok."""

    key: str
    ok: bool
    error: str | None = None


class StorageError(Exception):
    """Storage operation error."""

    def __init__(self, message: str, code: str = "E_STORAGE_ERROR"):
        super().__init__(message)
        self.message = message
        self.code = code


class StorageClientBase(ABC):
    """Abstract base class for storage client implementations."""

    @abstractmethod
    def put_object(
        self,
        bucket: str,
        key: str,
        data: bytes,
        *,
        content_type: str,
    ) -> StoredObject:
        """Upload an object. Never overwrites an existing key.

        Raises:
            StorageError: If the upload is rejected or the transport fails.
        """
        ...

    @abstractmethod
    def remove_objects(self, bucket: str, keys: list[str]) -> list[RemovalOutcome]:
        """Remove objects by key.

        Never raises. Removing a key that does not exist is a success.

        Returns:
            One RemovalOutcome per requested key, in request order.
        """
        ...

    @abstractmethod
    def head_object(self, bucket: str, key: str) -> ObjectMetadata | None:
        """Return metadata if the object exists, None otherwise.

        Raises:
            StorageError: If the storage service cannot be reached.
        """
        ...

    @abstractmethod
    def list_objects(self, bucket: str, prefix: str = "") -> list[str]:
        """List object keys in a bucket under an optional prefix.

        Raises:
            StorageError: If listing fails.
        """
        ...

    @abstractmethod
    def get_public_url(self, bucket: str, key: str) -> str:
        """Build the public URL for an object (no remote call)."""
        ...


class StorageClient(StorageClientBase):
    """Production Supabase Storage client.

    Uses httpx for HTTP operations against the Supabase Storage API.
    """

    def __init__(
        self,
        supabase_url: str,
        service_key: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_S,
        upload_timeout: float = DEFAULT_UPLOAD_TIMEOUT_S,
    ):
        """Initialize the storage client.

        Args:
            supabase_url: Supabase project URL (e.g., https://xxx.supabase.co).
            service_key: Supabase service role key.
            timeout: Timeout in seconds for metadata/delete/list calls.
            upload_timeout: Timeout in seconds for uploads.
        """
        self._base_url = supabase_url.rstrip("/")
        self._storage_url = f"{self._base_url}/storage/v1"
        self._timeout = timeout
        self._upload_timeout = upload_timeout
        self._headers = {
            "Authorization": f"Bearer {service_key}",
            "apikey": service_key,
        }

    def put_object(
        self,
        bucket: str,
        key: str,
        data: bytes,
        *,
        content_type: str,
    ) -> StoredObject:
        """Upload via POST /object/{bucket}/{key} without upsert."""
        url = f"{self._storage_url}/object/{bucket}/{key}"
        headers = {
            **self._headers,
            "Content-Type": content_type,
            "cache-control": f"max-age={CACHE_CONTROL_SECONDS}",
            "x-upsert": "false",
        }

        try:
            with httpx.Client() as client:
                response = client.post(
                    url, headers=headers, content=data, timeout=self._upload_timeout
                )
        except httpx.HTTPError as e:
            raise StorageError(f"Upload to {bucket} failed: {e}", code="E_UPLOAD_FAILED") from e

        if response.status_code not in (200, 201):
            raise StorageError(
                f"Upload to {bucket} failed: {response.status_code} {response.text}",
                code="E_UPLOAD_FAILED",
            )

        return StoredObject(bucket=bucket, key=key)

    def remove_objects(self, bucket: str, keys: list[str]) -> list[RemovalOutcome]:
        """Bulk delete via DELETE /object/{bucket} (best-effort)."""
        keys = [k for k in keys if k]
        if not keys:
            return []

        url = f"{self._storage_url}/object/{bucket}"
        try:
            with httpx.Client() as client:
                response = client.request(
                    "DELETE",
                    url,
                    headers=self._headers,
                    json={"prefixes": keys},
                    timeout=self._timeout,
                )
        except httpx.HTTPError as e:
            logger.warning("storage_remove_error", bucket=bucket, keys=keys, error=str(e))
            return [RemovalOutcome(key=k, ok=False, error=str(e)) for k in keys]

        # Supabase answers 200 with the rows it deleted; absent keys are simply not listed
        if response.status_code in (200, 204, 404):
            return [RemovalOutcome(key=k, ok=True) for k in keys]

        error = f"{response.status_code} {response.text}"
        logger.warning("storage_remove_failed", bucket=bucket, keys=keys, error=error)
        return [RemovalOutcome(key=k, ok=False, error=error) for k in keys]

    def head_object(self, bucket: str, key: str) -> ObjectMetadata | None:
        """Check object existence via HEAD request."""
        url = f"{self._storage_url}/object/{bucket}/{key}"

        try:
            with httpx.Client() as client:
                response = client.head(url, headers=self._headers, timeout=self._timeout)
        except httpx.HTTPError as e:
            raise StorageError(f"Failed to stat {bucket}/{key}: {e}") from e

        if response.status_code != 200:
            # Treat errors as "doesn't exist" for safety
            return None

        return ObjectMetadata(
            content_type=response.headers.get("content-type", "application/octet-stream"),
            size_bytes=int(response.headers.get("content-length", "0")),
        )

    def list_objects(self, bucket: str, prefix: str = "") -> list[str]:
        """List keys via POST /object/list/{bucket}, following offsets."""
        url = f"{self._storage_url}/object/list/{bucket}"
        names: list[str] = []
        offset = 0

        with httpx.Client() as client:
            while True:
                try:
                    response = client.post(
                        url,
                        headers=self._headers,
                        json={"prefix": prefix, "limit": LIST_PAGE_SIZE, "offset": offset},
                        timeout=self._timeout,
                    )
                except httpx.HTTPError as e:
                    raise StorageError(f"Failed to list {bucket}: {e}") from e

                if response.status_code != 200:
                    raise StorageError(
                        f"Failed to list {bucket}: {response.status_code} {response.text}"
                    )

                page = response.json()
                names.extend(f"{prefix}{item['name']}" for item in page if item.get("name"))
                if len(page) < LIST_PAGE_SIZE:
                    return names
                offset += LIST_PAGE_SIZE

    def get_public_url(self, bucket: str, key: str) -> str:
        return f"{self._storage_url}/object/public/{bucket}/{key}"


class FakeStorageClient(StorageClientBase):
    """Fake storage client for testing without real Supabase.

    Stores objects in memory and records every call. Failures can be
    injected per bucket with fail_uploads_for / fail_removals_for.
    """

    def __init__(self, public_base_url: str = "https://fake-storage.test"):
        self._objects: dict[tuple[str, str], tuple[bytes, str]] = {}
        self._public_base_url = public_base_url.rstrip("/")
        self.fail_uploads_for: set[str] = set()
        self.fail_removals_for: set[str] = set()
        self.calls: list[tuple[str, str]] = []  # (method, bucket)

    def put_object(
        self,
        bucket: str,
        key: str,
        data: bytes,
        *,
        content_type: str,
    ) -> StoredObject:
        """Store an object in memory."""
        self.calls.append(("put_object", bucket))
        if bucket in self.fail_uploads_for:
            raise StorageError(f"Upload to {bucket} failed: injected", code="E_UPLOAD_FAILED")
        if (bucket, key) in self._objects:
            raise StorageError(f"Upload to {bucket} failed: key exists", code="E_UPLOAD_FAILED")
        self._objects[(bucket, key)] = (data, content_type)
        return StoredObject(bucket=bucket, key=key)

    def remove_objects(self, bucket: str, keys: list[str]) -> list[RemovalOutcome]:
        """Remove fake objects; missing keys are ok."""
        self.calls.append(("remove_objects", bucket))
        if bucket in self.fail_removals_for:
            return [RemovalOutcome(key=k, ok=False, error="injected") for k in keys if k]
        outcomes = []
        for key in keys:
            if not key:
                continue
            self._objects.pop((bucket, key), None)
            outcomes.append(RemovalOutcome(key=key, ok=True))
        return outcomes

    def head_object(self, bucket: str, key: str) -> ObjectMetadata | None:
        """Check if fake object exists."""
        self.calls.append(("head_object", bucket))
        if (bucket, key) not in self._objects:
            return None
        content, content_type = self._objects[(bucket, key)]
        return ObjectMetadata(content_type=content_type, size_bytes=len(content))

    def list_objects(self, bucket: str, prefix: str = "") -> list[str]:
        """List fake object keys."""
        self.calls.append(("list_objects", bucket))
        return sorted(k for (b, k) in self._objects if b == bucket and k.startswith(prefix))

    def get_public_url(self, bucket: str, key: str) -> str:
        return f"{self._public_base_url}/storage/v1/object/public/{bucket}/{key}"

    # Test helper methods

    def get_object(self, bucket: str, key: str) -> bytes | None:
        """Get object content directly (test helper)."""
        entry = self._objects.get((bucket, key))
        return entry[0] if entry else None

    @property
    def remote_call_count(self) -> int:
        """Number of gateway calls that would have reached Supabase (test helper)."""
        return len(self.calls)

    def clear(self) -> None:
        """Clear all stored objects and recorded calls (test helper)."""
        self._objects.clear()
        self.calls.clear()


@lru_cache
def get_storage_client() -> StorageClientBase:
    """Get the configured storage client.

    Returns:
        StorageClient if SUPABASE_URL and SUPABASE_SERVICE_KEY are set,
        a process-wide FakeStorageClient otherwise (local dev without Supabase).
    """
    settings = get_settings()

    if settings.storage_configured:
        return StorageClient(
            supabase_url=settings.supabase_url,  # type: ignore[arg-type]
            service_key=settings.supabase_service_key,  # type: ignore[arg-type]
            timeout=settings.storage_timeout_s,
            upload_timeout=settings.storage_upload_timeout_s,
        )

    logger.warning("storage_not_configured_using_fake")
    return FakeStorageClient()
