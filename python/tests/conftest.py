"""Pytest configuration and fixtures for Songbird tests.

Test isolation strategy:
- Every test gets its own in-memory SQLite database (schema from the ORM models)
- Storage is a FakeStorageClient that records calls and can inject failures
- Auth tests use a MockJwtVerifier-backed app and tokens from tests.helpers
"""

import os
import sys
from collections.abc import Generator
from pathlib import Path
from uuid import UUID

# Settings are read lazily, but must be valid before any test builds an app
os.environ.setdefault("SONGBIRD_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("SUPABASE_JWKS_URL", "https://test.supabase.co/auth/v1/.well-known/jwks.json")
os.environ.setdefault("SUPABASE_ISSUER", "test-issuer")
os.environ.setdefault("SUPABASE_AUDIENCES", "test-audience")

# Add repo root to sys.path for importing top-level packages (e.g., apps)
_repo_root = Path(__file__).parent.parent.parent
if str(_repo_root) not in sys.path:
    sys.path.insert(0, str(_repo_root))

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from songbird.api.deps import get_db, get_storage
from songbird.app import add_request_id_middleware, create_app
from songbird.config import clear_settings_cache
from songbird.db.engine import create_db_engine
from songbird.db.models import Base
from songbird.db.session import create_session_factory
from songbird.storage.client import FakeStorageClient
from tests.helpers import create_test_user_id
from tests.support.jwt_verifier import MockJwtVerifier


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """A fresh in-memory database with the full schema."""
    engine = create_db_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return create_session_factory(engine)


@pytest.fixture
def db_session(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def fake_storage() -> FakeStorageClient:
    return FakeStorageClient()


@pytest.fixture
def test_verifier() -> MockJwtVerifier:
    return MockJwtVerifier()


def _override_dependencies(
    app: FastAPI, session_factory: sessionmaker[Session], storage: FakeStorageClient
) -> None:
    def override_get_db() -> Generator[Session, None, None]:
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage


@pytest.fixture
def app(session_factory, fake_storage, test_verifier) -> FastAPI:
    """App with auth + request-id middleware, bound to the test database and fake storage."""
    app = create_app(token_verifier=test_verifier)
    add_request_id_middleware(app, log_requests=False)
    _override_dependencies(app, session_factory, fake_storage)
    return app


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """Test client for the authenticated app. Send auth_headers() to log in."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def anonymous_client(session_factory, fake_storage) -> Generator[TestClient, None, None]:
    """Test client without auth middleware: every request is anonymous."""
    app = create_app(skip_auth_middleware=True)
    _override_dependencies(app, session_factory, fake_storage)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def test_user_id() -> UUID:
    return create_test_user_id()


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Reset the settings cache before each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()
