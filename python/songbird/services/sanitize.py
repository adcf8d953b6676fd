"""Text normalization and filename sanitizing for uploads.

normalize_text() prepares display strings (title, artist) for persistence.
sanitize_filename() produces a human-readable storage key prefix; it does not
provide uniqueness on its own (see songbird.storage.paths.build_storage_key).
"""

import re

MAX_TEXT_LENGTH = 255
MAX_FILENAME_LENGTH = 50
FILENAME_FALLBACK = "untitled"

AUDIO_EXTENSIONS = ("mp3", "wav", "m4a", "ogg")
DEFAULT_AUDIO_EXTENSION = "mp3"
IMAGE_EXTENSIONS = ("jpg", "jpeg", "png", "webp")
DEFAULT_IMAGE_EXTENSION = "jpg"

_WHITESPACE_RUN = re.compile(r"\s+")
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0e-\x1f\x7f]")
_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-z0-9-]")
_HYPHEN_RUN = re.compile(r"-+")


def normalize_text(value: str | None) -> str:
    """Normalize a display string.

    Trims, collapses whitespace runs to one space, strips control characters
    (0x00-0x1F, 0x7F) and truncates to 255 characters. Non-string input
    normalizes to "".

    Example:
        >>> normalize_text("  My   Song\\t\\n ")
        'My Song'
    """
    if not value or not isinstance(value, str):
        return ""
    # \t \n \v \f \r collapse to spaces; every other control character is dropped
    text = _CONTROL_CHARS.sub("", value)
    text = _WHITESPACE_RUN.sub(" ", text).strip()
    return text[:MAX_TEXT_LENGTH].rstrip()


def sanitize_filename(value: str | None) -> str:
    """Derive a filesystem- and URL-safe key prefix from free text.

    Lowercases, maps everything outside [a-z0-9-] to "-", collapses hyphen
    runs, strips leading/trailing hyphens and truncates to 50 characters.
    Returns "untitled" when nothing survives. Idempotent.
    """
    if not value or not isinstance(value, str):
        return FILENAME_FALLBACK
    text = _UNSAFE_FILENAME_CHARS.sub("-", value.strip().lower())
    text = _HYPHEN_RUN.sub("-", text).strip("-")
    # Truncation can expose a trailing hyphen
    text = text[:MAX_FILENAME_LENGTH].rstrip("-")
    return text or FILENAME_FALLBACK


def get_file_extension(
    filename: str | None,
    allowed_extensions: list[str] | tuple[str, ...],
    default_extension: str,
) -> str:
    """Return the lowercased extension of filename if allow-listed.

    Only the name is inspected, never file contents. Missing or unknown
    extensions fall back to default_extension.
    """
    if not filename or "." not in filename:
        return default_extension
    ext = filename.rsplit(".", 1)[1].lower()
    return ext if ext in allowed_extensions else default_extension
