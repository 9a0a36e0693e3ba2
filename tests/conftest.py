"""Shared fixtures: in-memory SQLite store, stub provider, API client."""

from __future__ import annotations

import os

# Point the module-level engine at SQLite before anything imports imagegen.database
os.environ["DATABASE_URL"] = "sqlite://"

from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app import app
from imagegen import database, models
from imagegen.provider import BaseImageProvider, get_provider


class StubProvider(BaseImageProvider):
    """Deterministic provider that records every call."""

    provider_name = "stub"

    def __init__(self, image_url: str = "https://cdn/x.png", error: Optional[Exception] = None) -> None:
        self.image_url = image_url
        self.error = error
        self.calls: list[tuple[str, int, int]] = []

    def generate(self, prompt: str, width: int, height: int) -> str:
        self.calls.append((prompt, width, height))
        if self.error is not None:
            raise self.error
        return self.image_url


def _memory_engine():
    return create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.fixture
def session_factory():
    engine = _memory_engine()
    models.Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def broken_session_factory():
    """Sessions against a store with no tables, so every read and write fails."""
    engine = _memory_engine()
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    yield db
    db.close()


@pytest.fixture
def broken_db_session(broken_session_factory):
    db = broken_session_factory()
    yield db
    db.close()


@pytest.fixture
def provider() -> StubProvider:
    return StubProvider()


def build_client(factory, provider: Optional[BaseImageProvider] = None, raise_server_exceptions: bool = True) -> TestClient:
    """Client wired to the given store; the configured provider is used when none is passed."""
    def override_get_db():
        db = factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[database.get_db] = override_get_db
    if provider is not None:
        app.dependency_overrides[get_provider] = lambda: provider
    return TestClient(app, raise_server_exceptions=raise_server_exceptions)


@pytest.fixture
def make_client():
    yield build_client
    app.dependency_overrides.clear()


@pytest.fixture
def client(session_factory, provider):
    yield build_client(session_factory, provider)
    app.dependency_overrides.clear()


@pytest.fixture
def broken_client(broken_session_factory, provider):
    yield build_client(broken_session_factory, provider)
    app.dependency_overrides.clear()
