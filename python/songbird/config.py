"""Application settings loaded from environment variables.

Environment Configuration:
    SONGBIRD_ENV: Deployment environment (local | test | staging | prod)
    DATABASE_URL: PostgreSQL connection string (required)

Auth Configuration (required in all environments):
    SUPABASE_JWKS_URL: Full URL to Supabase JWKS endpoint
    SUPABASE_ISSUER: Expected JWT issuer (trailing slash stripped)
    SUPABASE_AUDIENCES: Comma-separated list of allowed audiences

Storage Configuration:
    SUPABASE_URL / SUPABASE_SERVICE_KEY: Supabase Storage credentials
    SONGS_BUCKET / IMAGES_BUCKET: Bucket names for audio and artwork
    MAX_SONG_BYTES / MAX_IMAGE_BYTES: Upload ceilings
    STORAGE_TIMEOUT_S / STORAGE_UPLOAD_TIMEOUT_S: Per-call timeouts
"""

from enum import Enum
from functools import lru_cache
from typing import Annotated

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    """Valid deployment environments."""

    LOCAL = "local"
    TEST = "test"
    STAGING = "staging"
    PROD = "prod"


class Settings(BaseSettings):
    """Application configuration.

    Settings are loaded from environment variables.
    Validation rules:
    - DATABASE_URL is always required
    - SUPABASE_JWKS_URL, SUPABASE_ISSUER, SUPABASE_AUDIENCES are required in all environments
    - Size ceilings and timeouts must be positive
    """

    songbird_env: Environment = Field(default=Environment.LOCAL, alias="SONGBIRD_ENV")
    database_url: Annotated[str, Field(alias="DATABASE_URL")]

    # Supabase auth settings (required in all environments)
    supabase_jwks_url: str | None = Field(default=None, alias="SUPABASE_JWKS_URL")
    supabase_issuer: str | None = Field(default=None, alias="SUPABASE_ISSUER")
    supabase_audiences: str | None = Field(default=None, alias="SUPABASE_AUDIENCES")

    # Supabase Storage settings
    supabase_url: str | None = Field(default=None, alias="SUPABASE_URL")
    supabase_service_key: str | None = Field(default=None, alias="SUPABASE_SERVICE_KEY")
    songs_bucket: str = Field(default="songs", alias="SONGS_BUCKET")
    images_bucket: str = Field(default="images", alias="IMAGES_BUCKET")

    # Upload limits
    max_song_bytes: int = Field(default=50 * 1024 * 1024, alias="MAX_SONG_BYTES")  # 50 MiB
    max_image_bytes: int = Field(default=5 * 1024 * 1024, alias="MAX_IMAGE_BYTES")  # 5 MiB

    # Remote call timeouts
    storage_timeout_s: float = Field(default=30.0, alias="STORAGE_TIMEOUT_S")
    storage_upload_timeout_s: float = Field(default=120.0, alias="STORAGE_UPLOAD_TIMEOUT_S")

    # Worker threads used for best-effort blob cleanup fan-out
    cleanup_workers: int = Field(default=2, alias="CLEANUP_WORKERS")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def validate_required_settings(self) -> "Settings":
        """Ensure required settings are set for all environments."""
        missing_auth = []
        if not self.supabase_jwks_url:
            missing_auth.append("SUPABASE_JWKS_URL")
        if not self.supabase_issuer:
            missing_auth.append("SUPABASE_ISSUER")
        if not self.supabase_audiences:
            missing_auth.append("SUPABASE_AUDIENCES")

        if missing_auth:
            raise ValueError(
                f"Missing required Supabase auth settings: {', '.join(missing_auth)}. "
                "Set these environment variables or add them to .env."
            )

        for name, value in (
            ("MAX_SONG_BYTES", self.max_song_bytes),
            ("MAX_IMAGE_BYTES", self.max_image_bytes),
            ("STORAGE_TIMEOUT_S", self.storage_timeout_s),
            ("STORAGE_UPLOAD_TIMEOUT_S", self.storage_upload_timeout_s),
            ("CLEANUP_WORKERS", self.cleanup_workers),
        ):
            if value <= 0:
                raise ValueError(f"{name} must be > 0 (got {value})")

        return self

    @property
    def audience_list(self) -> list[str]:
        """Parse comma-separated audiences into a list."""
        if self.supabase_audiences:
            return [a.strip() for a in self.supabase_audiences.split(",") if a.strip()]
        return []

    @property
    def normalized_issuer(self) -> str | None:
        """Return issuer with trailing slash stripped."""
        if self.supabase_issuer:
            return self.supabase_issuer.rstrip("/")
        return None

    @property
    def storage_configured(self) -> bool:
        """Whether real Supabase Storage credentials are present."""
        return bool(self.supabase_url and self.supabase_service_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If required settings are missing or invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache. Useful for testing."""
    get_settings.cache_clear()
