"""
Test configuration and fixtures.
"""
import os
from datetime import datetime, timezone
from typing import Callable, Dict, Generator, Optional
from uuid import UUID

import pytest
from fastapi.testclient import TestClient

# Configure an in-memory database and a strong signing key before importing the app
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "synlitics-test-suite-signing-key-0123456789"

from synlitics.main import app
from synlitics.core.config import get_settings
from synlitics.core.deps import get_registry
from synlitics.db.base import Base
from synlitics.db.session import SessionLocal, engine, init_db
from synlitics.services.auth_provider import DatabaseAuthProvider
from synlitics.services.blob_store import LocalBlobStore
from synlitics.services.collaborators import CompletionScheduler
from synlitics.services.flow_registry import FlowRegistry
from synlitics.services.record_store import SqlRecordStore
from synlitics.services.upload_flow import FlowSession


FIXED_NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


class ManualCompletionScheduler(CompletionScheduler):
    """Holds completion callbacks until a test fires them."""

    def __init__(self):
        self.callbacks: Dict[UUID, Callable[[], None]] = {}
        self.scheduled_count = 0

    def schedule(self, record_id: UUID, callback: Callable[[], None]) -> None:
        self.callbacks[record_id] = callback
        self.scheduled_count += 1

    def cancel(self, record_id: UUID) -> bool:
        return self.callbacks.pop(record_id, None) is not None

    def cancel_all(self) -> None:
        self.callbacks.clear()

    def fire(self, record_id: UUID) -> None:
        self.callbacks.pop(record_id)()

    def fire_all(self) -> None:
        callbacks = list(self.callbacks.values())
        self.callbacks.clear()
        for callback in callbacks:
            callback()


@pytest.fixture(autouse=True)
def database() -> Generator[None, None, None]:
    """Fresh schema for every test."""
    init_db(engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory():
    return SessionLocal


@pytest.fixture
def blob_store(tmp_path) -> LocalBlobStore:
    return LocalBlobStore(tmp_path / "storage")


@pytest.fixture
def record_store(session_factory) -> SqlRecordStore:
    return SqlRecordStore(session_factory)


@pytest.fixture
def scheduler() -> ManualCompletionScheduler:
    return ManualCompletionScheduler()


@pytest.fixture
def make_flow(session_factory, blob_store, record_store, scheduler):
    """Factory for initialized flow sessions sharing the test collaborators."""
    def _make(
        access_token: Optional[str] = None,
        flow_scheduler: Optional[CompletionScheduler] = None,
        now: datetime = FIXED_NOW,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> FlowSession:
        flow = FlowSession(
            auth=DatabaseAuthProvider(session_factory, access_token),
            blobs=blob_store,
            records=record_store,
            scheduler=flow_scheduler or scheduler,
            settings=get_settings(),
            clock=clock or (lambda: now),
        )
        flow.initialize()
        return flow

    return _make


@pytest.fixture
def owner_flow(make_flow) -> FlowSession:
    """Signed-up owner who has finished onboarding."""
    flow = make_flow()
    flow.sign_up("owner@example.com", "testpassword123")
    flow.submit_onboarding("Joe's Pizza Downtown")
    return flow


@pytest.fixture
def registry(session_factory, blob_store) -> FlowRegistry:
    registry = FlowRegistry(
        session_factory=session_factory,
        blobs=blob_store,
        settings=get_settings(),
        scheduler_factory=ManualCompletionScheduler,
    )
    yield registry
    registry.close()


@pytest.fixture
def client(registry: FlowRegistry) -> Generator[TestClient, None, None]:
    """Create test client with the registry override."""
    app.dependency_overrides[get_registry] = lambda: registry

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client: TestClient) -> dict:
    """Get auth headers for a freshly signed-up owner."""
    response = client.post(
        "/api/auth/signup",
        json={"email": "owner@example.com", "password": "testpassword123"}
    )
    token = response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def onboarded_headers(client: TestClient, auth_headers: dict) -> dict:
    """Get auth headers for an owner with a restaurant profile."""
    client.post(
        "/api/flow/onboarding",
        headers=auth_headers,
        json={"restaurant_name": "Test Restaurant"},
    )
    return auth_headers
