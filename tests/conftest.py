"""
tests/conftest.py -- Shared test fixtures for Threadline auth tests.

This module provides:
  - store / hasher / issuer / registry / authenticator / accounts: unit-level
    components over an in-memory SQLite store
  - file_store: a file-backed store for tests that touch it from several threads
  - api_client: TestClient over the real app with a patched lifespan

Design: unit fixtures use plain sqlite:///:memory: (SQLAlchemy keeps one
connection per thread, and these tests stay on one thread). Anything that
crosses threads -- TestClient runs sync handlers in a worker pool, the
concurrency tests use a ThreadPoolExecutor -- gets a real SQLite file under
tmp_path so every connection sees the same database and SQLite's own
locking is exercised.

Environment must be set before any core/api import: DEBUG lets
get_settings() auto-generate SECRET_KEY, BCRYPT_ROUNDS=4 keeps hashing fast,
and the login limit is raised so scenario tests never hit 429.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: set before any core/api import so get_settings() picks them up.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app, configure_auth
from auth.authenticator import Authenticator
from auth.passwords import CredentialHasher
from auth.registry import SessionRegistry
from auth.service import AccountService
from auth.store import UserStore
from auth.tokens import TokenIssuer
from core.config import get_settings

TEST_SECRET = "test-secret-key-0123456789abcdef-0123456789"


# ---------------------------------------------------------------------------
# Component fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def file_store(tmp_path) -> Generator[UserStore, None, None]:
    s = UserStore(f"sqlite:///{tmp_path / 'auth.db'}")
    yield s
    s.close()


@pytest.fixture(scope="session")
def hasher() -> CredentialHasher:
    """Minimum bcrypt cost -- correctness, not strength, is under test."""
    return CredentialHasher(rounds=4)


@pytest.fixture
def issuer() -> TokenIssuer:
    return TokenIssuer(TEST_SECRET)


@pytest.fixture
def registry(store: UserStore) -> SessionRegistry:
    return SessionRegistry(store)


@pytest.fixture
def authenticator(store: UserStore, issuer: TokenIssuer, registry: SessionRegistry) -> Authenticator:
    return Authenticator(store, issuer, registry)


@pytest.fixture
def accounts(
    store: UserStore, hasher: CredentialHasher, issuer: TokenIssuer, registry: SessionRegistry
) -> AccountService:
    return AccountService(store, hasher, issuer, registry)


# ---------------------------------------------------------------------------
# API fixture
# ---------------------------------------------------------------------------


def _patch_lifespan(user_store: UserStore):
    """Return a lifespan that wires a test store into app.state."""

    @asynccontextmanager
    async def test_lifespan(app):
        configure_auth(app, user_store, get_settings())
        yield

    return test_lifespan


@pytest.fixture
def api_client(file_store: UserStore) -> Generator[TestClient, None, None]:
    """TestClient over the real app with an isolated, empty identity store."""
    app.router.lifespan_context = _patch_lifespan(file_store)
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client
