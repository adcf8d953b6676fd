"""Storage key building utilities.

All object keys for uploads are built here so every caller gets the same
collision-resistant shape.

Key Invariant:
    {prefix}-{timestamp_ms}-{token}.{ext}

Rules:
    - No leading slash
    - The prefix is readable only; uniqueness comes from timestamp + token
    - Audio and image keys are generated independently, each with its own token
"""

import time
from uuid import uuid4

from songbird.services.sanitize import sanitize_filename


def _timestamp_ms() -> int:
    return time.time_ns() // 1_000_000


def build_storage_key(title: str, ext: str) -> str:
    """Build a unique storage key for one uploaded object.

    Args:
        title: Free text the readable prefix is derived from (sanitized here).
        ext: Already-validated file extension (without leading dot).

    Returns:
        Storage key, e.g. "my-song-1718000000000-3f2a....mp3".
    """
    return f"{sanitize_filename(title)}-{_timestamp_ms()}-{uuid4().hex}.{ext}"
