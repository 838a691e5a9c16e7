"""Shared fixtures: in-memory database, callers, payloads and a fake Invintus API."""

from typing import Any, Dict, List

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from invintus_sync.config import settings
from invintus_sync.core.auth import Capability, Principal
from invintus_sync.models import audit_models, content_models, option_models  # noqa: F401


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def editor():
    return Principal("editor", [Capability.PUBLISH, Capability.DELETE])


@pytest.fixture
def town_hall() -> Dict[str, Any]:
    return {
        "eventID": "abc_42",
        "title": "Town Hall",
        "eventStatus": "published",
        "startDateTime": "2020-01-01T00:00:00Z",
        "private": False,
    }


@pytest.fixture
def api_keys(monkeypatch):
    keys = {
        "admin-key": ["publish", "delete", "manage_settings"],
        "editor-key": ["publish", "delete"],
        "viewer-key": [],
    }
    monkeypatch.setattr(settings, "api_keys", keys)
    return keys


class FakeInvintus:
    """httpx.MockTransport handler standing in for the Invintus API."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.status_code = 200
        self.preferences = [
            {"prefID": "pref-1", "playerPref": {"name": "Default Player"}},
            {"prefID": "pref-2", "playerPref": {"name": "Chamber"}},
        ]
        self.live_events: List[Dict[str, Any]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": "boom"})
        if request.url.path.endswith("/Player/getPlayerPreference"):
            return httpx.Response(200, json={"data": self.preferences})
        if request.url.path.endswith("/Listings/getBasic"):
            return httpx.Response(200, json={"data": self.live_events})
        return httpx.Response(404, json={})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def fake_invintus():
    return FakeInvintus()


@pytest.fixture
def client(engine, api_keys, fake_invintus):
    from invintus_sync.main import app
    from invintus_sync.api.deps import get_invintus_client
    from invintus_sync.connectors.invintus.client import InvintusClient
    from invintus_sync.database import get_session

    def override_session():
        with Session(engine) as session:
            yield session

    async def override_invintus_client():
        invintus = InvintusClient(
            api_key="test-api-key",
            client_id="client-7",
            base_url="https://invintus.test/v2",
            transport=fake_invintus.transport,
        )
        try:
            yield invintus
        finally:
            await invintus.close()

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_invintus_client] = override_invintus_client
    yield TestClient(app)
    app.dependency_overrides.clear()
