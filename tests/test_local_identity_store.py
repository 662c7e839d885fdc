"""Tests for LocalIdentityStore functionality."""

import json
from pathlib import Path

import pytest

from relgraph.domain.profile import Profile
from relgraph.identity_store.local import LocalIdentityStore


@pytest.fixture
def store() -> LocalIdentityStore:
    return LocalIdentityStore.from_data(
        [
            Profile(id="carol", first_name="Carol", last_name="Xu"),
            Profile(id="alice", first_name="Alice", last_name="Zimmer", connection_count=2),
            Profile(id="bob", first_name="Bob"),
        ]
    )


@pytest.mark.asyncio
async def test_empty_identity_store() -> None:
    """Test that an empty LocalIdentityStore works correctly."""
    store = LocalIdentityStore()
    assert await store.exists("alice") is False
    assert await store.get_profile("alice") is None
    assert await store.get_all_profile_ids() == set()
    assert await store.batch_fetch_display_info(["alice"]) == {}


@pytest.mark.asyncio
async def test_counters(store: LocalIdentityStore) -> None:
    assert await store.increment_connection_count("alice", 1) == 3
    assert await store.increment_connection_count("alice", -2) == 1

    await store.set_connection_count("bob", 5)
    profile = await store.get_profile("bob")
    assert profile is not None and profile.connection_count == 5

    with pytest.raises(KeyError):
        await store.increment_connection_count("mallory", 1)
    with pytest.raises(KeyError):
        await store.set_connection_count("mallory", 0)


@pytest.mark.asyncio
async def test_batch_fetch_skips_unknown(store: LocalIdentityStore) -> None:
    """Test that display info is returned only for known identities."""
    display = await store.batch_fetch_display_info(["alice", "mallory", "bob"])

    assert set(display) == {"alice", "bob"}
    assert display["alice"].username == "Alice Zimmer"
    assert display["bob"].username == "Bob"


@pytest.mark.asyncio
async def test_list_profiles_orders_and_pages(store: LocalIdentityStore) -> None:
    profiles = await store.list_profiles()
    assert [p.id for p in profiles] == ["alice", "bob", "carol"]

    profiles = await store.list_profiles(exclude={"bob"}, skip=1, limit=5)
    assert [p.id for p in profiles] == ["carol"]


@pytest.mark.asyncio
async def test_save_and_load(store: LocalIdentityStore, tmp_path: Path) -> None:
    """Test that profiles survive a save/load cycle."""
    filepath = tmp_path / "profiles.json"
    await store.increment_connection_count("carol", 1)
    store.save(str(filepath))

    with open(filepath) as f:
        data = json.load(f)
    assert set(data["profiles"]) == {"alice", "bob", "carol"}

    loaded = LocalIdentityStore(filepath=filepath)
    carol = await loaded.get_profile("carol")
    assert carol is not None
    assert carol.connection_count == 1
    assert carol.last_name == "Xu"


def test_add_profile_and_save_without_path() -> None:
    store = LocalIdentityStore()
    store.add_profile(Profile(id="dave", first_name="Dave"))

    with pytest.raises(ValueError, match="No filepath provided"):
        store.save()
