"""Shared pytest fixtures."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from helpers import StubProvider
from rethink.config import ServerSettings
from rethink.errors import ProviderError
from rethink.main import create_app
from rethink.memory import SessionStore


@pytest.fixture
def provider() -> StubProvider:
    return StubProvider()


@pytest.fixture
def store() -> SessionStore:
    return SessionStore(maxsize=100, ttl_seconds=3600)


@pytest.fixture
def api(provider: StubProvider, store: SessionStore) -> TestClient:
    app = create_app(ServerSettings(), provider=provider, store=store)
    return TestClient(app)


@pytest.fixture
def failing_provider(provider: StubProvider) -> StubProvider:
    provider.json_replies.append(ProviderError("upstream 503"))
    return provider
