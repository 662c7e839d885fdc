import json
from pathlib import Path

from fastapi.testclient import TestClient

from relgraph.api import create_app, persist_on_shutdown
from relgraph.domain.profile import Profile
from relgraph.edge_store.local import LocalEdgeStore
from relgraph.identity_store.local import LocalIdentityStore
from tests.fakes import FakeIdentityStore


def as_user(user_id: str) -> dict[str, str]:
    """Headers the gateway forwards for an authenticated user."""
    return {"X-User-Id": user_id}


def connect(client: TestClient, requester: str, accepter: str) -> None:
    """Helper function to connect two users through the API."""
    response = client.post("/connections", json={"user_id": accepter}, headers=as_user(requester))
    assert response.status_code == 201, response.text
    response = client.patch(
        f"/connections/{requester}", json={"is_accept": True}, headers=as_user(accepter)
    )
    assert response.status_code == 200, response.text


def test_health(test_client: TestClient) -> None:
    response = test_client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_requires_gateway_credentials(test_client: TestClient) -> None:
    """Test that routes reject requests with wrong basic auth credentials."""
    response = test_client.get(
        "/connections/counts", headers=as_user("alice"), auth=("gateway", "wrong")
    )
    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Basic"


def test_requires_known_caller(test_client: TestClient) -> None:
    """Test that a missing, malformed or unknown caller identity is rejected."""
    assert test_client.get("/connections/counts").status_code == 401
    assert test_client.get("/connections/counts", headers=as_user("bad id")).status_code == 401

    response = test_client.get("/connections/counts", headers=as_user("mallory"))
    assert response.status_code == 401
    assert "User not authenticated" in response.text


def test_request_connection(test_client: TestClient) -> None:
    response = test_client.post("/connections", json={"user_id": "bob"}, headers=as_user("alice"))
    assert response.status_code == 201
    body = response.json()
    assert body["initiator"] == "alice"
    assert body["target"] == "bob"
    assert body["kind"] == "pending"


def test_request_connection_errors(test_client: TestClient) -> None:
    """Test that domain errors map to their HTTP status codes."""
    response = test_client.post(
        "/connections", json={"user_id": "alice"}, headers=as_user("alice")
    )
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_argument"

    response = test_client.post(
        "/connections", json={"user_id": "mallory"}, headers=as_user("alice")
    )
    assert response.status_code == 404
    assert response.json() == {"error": "not_found", "detail": "User not found."}

    test_client.post("/connections", json={"user_id": "bob"}, headers=as_user("alice"))
    response = test_client.post("/connections", json={"user_id": "alice"}, headers=as_user("bob"))
    assert response.status_code == 409
    assert response.json()["error"] == "conflict"


def test_accept_and_status(test_client: TestClient) -> None:
    connect(test_client, "alice", "bob")

    response = test_client.get("/connections/status/alice", headers=as_user("bob"))
    assert response.status_code == 200
    assert response.json() == {"connection": "connected", "follow": "following", "blocked": False}

    response = test_client.get("/connections/status/bob", headers=as_user("alice"))
    assert response.json()["follow"] == "none"

    response = test_client.get("/connections/status/alice", headers=as_user("alice"))
    assert response.json()["connection"] == "owner"


def test_ignore_request(test_client: TestClient) -> None:
    test_client.post("/connections", json={"user_id": "bob"}, headers=as_user("alice"))
    response = test_client.patch(
        "/connections/alice", json={"is_accept": False}, headers=as_user("bob")
    )
    assert response.status_code == 200
    assert response.json()["kind"] == "ignored"

    response = test_client.get("/connections/status/bob", headers=as_user("alice"))
    assert response.json()["connection"] == "pending"


def test_accept_missing_request(test_client: TestClient) -> None:
    response = test_client.patch(
        "/connections/alice", json={"is_accept": True}, headers=as_user("bob")
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "Connection request was not found."


def test_withdraw_request(test_client: TestClient) -> None:
    test_client.post("/connections", json={"user_id": "bob"}, headers=as_user("alice"))

    response = test_client.delete("/connections/bob/pending", headers=as_user("alice"))
    assert response.status_code == 204

    response = test_client.delete("/connections/bob/pending", headers=as_user("alice"))
    assert response.status_code == 404


def test_partial_acceptance_reports_multi_status(
    test_client: TestClient, identity_store: FakeIdentityStore
) -> None:
    """Test that a failed counter update after accepting is reported and can be completed."""
    test_client.post("/connections", json={"user_id": "bob"}, headers=as_user("alice"))
    identity_store.failing_increments["alice"] = 1

    response = test_client.patch(
        "/connections/alice", json={"is_accept": True}, headers=as_user("bob")
    )
    assert response.status_code == 207
    body = response.json()
    assert body["error"] == "partial_success"
    assert body["completed"] == ["connect"]
    assert body["failed"] == "increment_requester_count"
    assert body["edge"]["kind"] == "connected"

    response = test_client.post("/connections/alice/complete", headers=as_user("bob"))
    assert response.status_code == 200
    assert identity_store.connection_count("alice") == 1
    assert identity_store.connection_count("bob") == 1

    response = test_client.get("/connections/status/alice", headers=as_user("bob"))
    assert response.json()["follow"] == "following"


def test_remove_connection(test_client: TestClient, identity_store: FakeIdentityStore) -> None:
    connect(test_client, "alice", "bob")

    response = test_client.delete("/connections/alice", headers=as_user("bob"))
    assert response.status_code == 204
    assert identity_store.connection_count("alice") == 0
    assert identity_store.connection_count("bob") == 0

    response = test_client.delete("/connections/alice", headers=as_user("bob"))
    assert response.status_code == 404


def test_follow_unfollow(test_client: TestClient) -> None:
    response = test_client.post(
        "/connections/follow", json={"user_id": "carol"}, headers=as_user("alice")
    )
    assert response.status_code == 201
    assert response.json()["kind"] == "following"

    response = test_client.post(
        "/connections/follow", json={"user_id": "carol"}, headers=as_user("alice")
    )
    assert response.status_code == 409

    response = test_client.delete("/connections/unfollow/carol", headers=as_user("alice"))
    assert response.status_code == 204
    response = test_client.delete("/connections/unfollow/carol", headers=as_user("alice"))
    assert response.status_code == 404


def test_block_forbids_follow(test_client: TestClient) -> None:
    response = test_client.post(
        "/connections/block", json={"user_id": "dave"}, headers=as_user("alice")
    )
    assert response.status_code == 201

    response = test_client.post(
        "/connections/follow", json={"user_id": "alice"}, headers=as_user("dave")
    )
    assert response.status_code == 403
    assert response.json()["error"] == "forbidden"

    response = test_client.get("/connections/status/dave", headers=as_user("alice"))
    assert response.json()["blocked"] is True

    response = test_client.get("/connections/blocked", headers=as_user("alice"))
    assert [row["user_id"] for row in response.json()] == ["dave"]

    response = test_client.delete("/connections/unblock/dave", headers=as_user("alice"))
    assert response.status_code == 204


def test_list_connections(test_client: TestClient) -> None:
    """Test listing another user's connections with the caller's is_connected flags."""
    connect(test_client, "alice", "bob")
    connect(test_client, "carol", "alice")
    connect(test_client, "carol", "bob")

    response = test_client.get("/connections/list?limit=1", headers=as_user("alice"))
    assert response.status_code == 200
    assert [row["user_id"] for row in response.json()] == ["carol"]

    response = test_client.get(
        "/connections/list?user_id=alice&by=first_name&direction=asc", headers=as_user("bob")
    )
    rows = response.json()
    assert [row["user_id"] for row in rows] == ["bob", "carol"]
    assert [row["is_connected"] for row in rows] == [False, True]
    assert rows[1]["username"] == "Carol Xu"

    response = test_client.get("/connections/list?name=%20xu%20", headers=as_user("alice"))
    assert [row["user_id"] for row in response.json()] == ["carol"]


def test_list_rejects_oversized_page(test_client: TestClient) -> None:
    response = test_client.get("/connections/list?limit=101", headers=as_user("alice"))
    assert response.status_code == 400


def test_request_lists_and_counts(test_client: TestClient) -> None:
    test_client.post("/connections", json={"user_id": "alice"}, headers=as_user("bob"))
    test_client.post("/connections", json={"user_id": "carol"}, headers=as_user("alice"))
    test_client.post("/connections/follow", json={"user_id": "alice"}, headers=as_user("dave"))

    pending = test_client.get("/connections/pending", headers=as_user("alice")).json()
    assert [row["user_id"] for row in pending] == ["bob"]

    sent = test_client.get("/connections/sent", headers=as_user("alice")).json()
    assert [row["user_id"] for row in sent] == ["carol"]

    followers = test_client.get("/connections/followers", headers=as_user("alice")).json()
    assert [row["user_id"] for row in followers] == ["dave"]

    following = test_client.get("/connections/following", headers=as_user("dave")).json()
    assert [row["user_id"] for row in following] == ["alice"]

    recommended = test_client.get("/connections/recommended", headers=as_user("alice")).json()
    assert [row["user_id"] for row in recommended] == ["erin"]

    counts = test_client.get("/connections/counts", headers=as_user("alice")).json()
    assert counts == {"connections": 0, "followers": 1, "following": 0, "pending": 1}


def test_search_users(test_client: TestClient) -> None:
    test_client.post("/connections/block", json={"user_id": "erin"}, headers=as_user("alice"))

    response = test_client.get("/connections/users?name=v", headers=as_user("alice"))
    assert response.status_code == 200
    assert [row["user_id"] for row in response.json()] == ["dave"]

    response = test_client.get("/connections/users", headers=as_user("alice"))
    assert response.status_code == 400


def test_stores_saved_on_shutdown(tmp_path: Path) -> None:
    """Test that the lifespan persists both stores when the app stops."""
    edge_path = tmp_path / "edges.json"
    profile_path = tmp_path / "profiles.json"
    edge_store = LocalEdgeStore(filepath=edge_path)
    identity_store = LocalIdentityStore(filepath=profile_path)
    identity_store.add_profile(Profile(id="alice", first_name="Alice"))
    identity_store.add_profile(Profile(id="bob", first_name="Bob"))
    app = create_app(
        edge_store=edge_store,
        identity_store=identity_store,
        lifespan=persist_on_shutdown(edge_store, identity_store),
    )

    with TestClient(app) as client:
        client.auth = ("gateway", "secret")
        response = client.post("/connections", json={"user_id": "bob"}, headers=as_user("alice"))
        assert response.status_code == 201
        assert not edge_path.exists()

    with open(edge_path) as f:
        assert [edge["kind"] for edge in json.load(f)["edges"]] == ["pending"]
    assert profile_path.exists()
