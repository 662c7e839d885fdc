import os
from datetime import datetime, timedelta, timezone
from typing import Callable

# Settings are read at import time; the API modules need gateway credentials
os.environ.setdefault("AUTH_USERNAME", "gateway")
os.environ.setdefault("AUTH_PASSWORD", "secret")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from relgraph.api import create_app  # noqa: E402
from relgraph.domain.profile import Profile  # noqa: E402
from relgraph.edge_store.local import LocalEdgeStore  # noqa: E402
from relgraph.services.listing import ListingService  # noqa: E402
from relgraph.services.relationships import RelationshipService  # noqa: E402
from relgraph.services.status import StatusResolver  # noqa: E402
from tests.fakes import FakeIdentityStore  # noqa: E402

START = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def test_profiles() -> dict[str, Profile]:
    return {
        "alice": Profile(id="alice", first_name="Alice", last_name="Zimmer", headline="Engineer"),
        "bob": Profile(id="bob", first_name="Bob", last_name="Young"),
        "carol": Profile(id="carol", first_name="Carol", last_name="Xu", headline="Designer"),
        "dave": Profile(id="dave", first_name="Dave", last_name="Walker"),
        "erin": Profile(id="erin", first_name="Erin", last_name="Vance", is_premium=True),
    }


@pytest.fixture
def clock() -> Callable[[], datetime]:
    """Clock that advances one minute on every call."""
    ticks = iter(range(1_000_000))
    return lambda: START + timedelta(minutes=next(ticks))


@pytest.fixture
def identity_store(test_profiles: dict[str, Profile]) -> FakeIdentityStore:
    return FakeIdentityStore(test_profiles)


@pytest.fixture
def edge_store() -> LocalEdgeStore:
    return LocalEdgeStore()


@pytest.fixture
def service(
    edge_store: LocalEdgeStore,
    identity_store: FakeIdentityStore,
    clock: Callable[[], datetime],
) -> RelationshipService:
    return RelationshipService(edge_store=edge_store, identity_store=identity_store, clock=clock)


@pytest.fixture
def resolver(edge_store: LocalEdgeStore) -> StatusResolver:
    return StatusResolver(edge_store)


@pytest.fixture
def listing(edge_store: LocalEdgeStore, identity_store: FakeIdentityStore) -> ListingService:
    return ListingService(edge_store=edge_store, identity_store=identity_store, max_page_size=50)


@pytest.fixture(autouse=True)
def mock_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    """Override settings for testing."""
    monkeypatch.setattr("relgraph.config.settings.auth_username", "gateway")
    monkeypatch.setattr("relgraph.config.settings.auth_password", "secret")


@pytest.fixture
def test_client(edge_store: LocalEdgeStore, identity_store: FakeIdentityStore) -> TestClient:
    """Create test client with an in-memory edge store and a fake identity store."""
    app = create_app(edge_store=edge_store, identity_store=identity_store)
    client = TestClient(app)
    client.auth = ("gateway", "secret")
    return client
