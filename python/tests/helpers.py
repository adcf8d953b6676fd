"""Test helpers for authentication and common test operations.

Provides:
- Token minting for test authentication
- Header generation for test requests
- Session and upload builders for service-level tests
- The generated storage key pattern
"""

import re
import time
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import jwt

from songbird.auth.identity import SessionContext
from songbird.services.upload import SongUpload, UploadedFile
from tests.support.jwt_verifier import MockJwtVerifier

# Default test token settings
DEFAULT_ISSUER = "test-issuer"
DEFAULT_AUDIENCE = "test-audience"
DEFAULT_EXPIRES_IN = 3600  # 1 hour

# Generated storage keys: {prefix}-{timestamp_ms}-{token}.{ext}
STORAGE_KEY_PATTERN = re.compile(
    r"^(?P<prefix>[a-z0-9-]+)-(?P<ms>\d+)-(?P<token>[0-9a-f]{32})\.(?P<ext>\w+)$"
)


def mint_test_token(
    user_id: UUID | str,
    expires_in: int = DEFAULT_EXPIRES_IN,
    issuer: str = DEFAULT_ISSUER,
    audience: str = DEFAULT_AUDIENCE,
    **extra_claims,
) -> str:
    """Mint a valid test JWT signed with the MockJwtVerifier key."""
    now = int(time.time())
    payload = {
        "sub": str(user_id),
        "iss": issuer,
        "aud": audience,
        "iat": now,
        "exp": now + expires_in,
        **extra_claims,
    }
    return jwt.encode(payload, MockJwtVerifier.get_private_key(), algorithm="RS256")


def mint_expired_token(user_id: UUID | str) -> str:
    """Mint a token that expired 1 hour ago (well past the clock skew)."""
    return mint_test_token(user_id, expires_in=-3600)


def mint_token_with_bad_signature(user_id: UUID | str) -> str:
    """Mint a token signed with a different key."""
    from cryptography.hazmat.primitives import serialization
    from cryptography.hazmat.primitives.asymmetric import rsa

    other_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    other_key_bytes = other_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )

    now = int(time.time())
    payload = {
        "sub": str(user_id),
        "iss": DEFAULT_ISSUER,
        "aud": DEFAULT_AUDIENCE,
        "iat": now,
        "exp": now + DEFAULT_EXPIRES_IN,
    }
    return jwt.encode(payload, other_key_bytes, algorithm="RS256")


def auth_headers(user_id: UUID | str, **token_kwargs) -> dict[str, str]:
    """Return headers dict with valid Authorization for the given user."""
    token = mint_test_token(user_id, **token_kwargs)
    return {"Authorization": f"Bearer {token}"}


def create_test_user_id() -> UUID:
    return uuid4()


def make_session(user_id: UUID | None = None, expires_in: int = DEFAULT_EXPIRES_IN) -> SessionContext:
    """Build a SessionContext directly, bypassing JWT verification."""
    return SessionContext(
        user_id=user_id or uuid4(),
        expires_at=datetime.now(UTC) + timedelta(seconds=expires_in),
    )


def make_upload(
    title: str = "My Song",
    artist: str = "Some Artist",
    song_data: bytes | None = b"ID3fake-audio-bytes",
    image_data: bytes | None = b"\xff\xd8\xfffake-jpeg",
    song_filename: str = "track.mp3",
    image_filename: str = "cover.jpg",
) -> SongUpload:
    """Build a SongUpload; pass None for either payload to omit that file."""
    return SongUpload(
        title=title,
        artist=artist,
        song_file=(
            UploadedFile(filename=song_filename, content_type="audio/mpeg", data=song_data)
            if song_data is not None
            else None
        ),
        image_file=(
            UploadedFile(filename=image_filename, content_type="image/jpeg", data=image_data)
            if image_data is not None
            else None
        ),
    )
