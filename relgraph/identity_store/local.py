import json
from pathlib import Path
from typing import Dict, Iterable, List

from relgraph.domain.profile import DisplayInfo, Profile
from relgraph.identity_store.base import IdentityStore


class LocalIdentityStore(IdentityStore):
    """Local identity store that saves profiles to a JSON file."""

    def __init__(self, filepath: str | Path | None = None) -> None:
        """Initialize LocalIdentityStore.

        Args:
            filepath: Path to profile store file. If provided and exists, will auto-load.
                     If provided and doesn't exist, will save to this path when save() is called.
                     If not provided, creates empty store in memory only.
        """
        self._filepath = str(filepath) if filepath else None

        if self._filepath and Path(self._filepath).exists():
            with open(self._filepath, "r") as f:
                data = json.load(f)
                self._profiles = {
                    user_id: Profile(**profile_data)
                    for user_id, profile_data in data["profiles"].items()
                }
        else:
            self._profiles = {}

    @classmethod
    def from_data(cls, profiles: Iterable[Profile] | None = None) -> "LocalIdentityStore":
        """Create LocalIdentityStore from provided profiles (useful for testing)."""
        instance = cls(filepath=None)
        instance._profiles = {profile.id: profile for profile in profiles or []}
        return instance

    def add_profile(self, profile: Profile) -> None:
        """Add a new profile or replace an existing one."""
        self._profiles[profile.id] = profile

    async def exists(self, user_id: str) -> bool:
        return user_id in self._profiles

    async def get_profile(self, user_id: str) -> Profile | None:
        return self._profiles.get(user_id)

    async def increment_connection_count(self, user_id: str, delta: int) -> int:
        if user_id not in self._profiles:
            raise KeyError(f"Profile {user_id} not found")
        profile = self._profiles[user_id]
        profile.connection_count += delta
        return profile.connection_count

    async def set_connection_count(self, user_id: str, value: int) -> None:
        if user_id not in self._profiles:
            raise KeyError(f"Profile {user_id} not found")
        self._profiles[user_id].connection_count = value

    async def batch_fetch_display_info(self, user_ids: Iterable[str]) -> dict[str, DisplayInfo]:
        return {
            user_id: self._profiles[user_id].display_info()
            for user_id in user_ids
            if user_id in self._profiles
        }

    async def list_profiles(
        self, *, exclude: Iterable[str] = (), skip: int = 0, limit: int | None = None
    ) -> List[Profile]:
        excluded = set(exclude)
        profiles = [
            self._profiles[user_id]
            for user_id in sorted(self._profiles)
            if user_id not in excluded
        ]
        end = None if limit is None else skip + limit
        return profiles[skip:end]

    async def get_all_profile_ids(self) -> set[str]:
        return set(self._profiles.keys())

    def save(self, filepath: str | None = None) -> None:
        """Save the identity store to a JSON file.

        Args:
            filepath: Path to save to. If not provided, uses the filepath from initialization.
        """
        save_path = filepath or self._filepath
        if not save_path:
            raise ValueError(
                "No filepath provided and no default filepath set during initialization"
            )

        save_path = str(save_path)
        data = {
            "profiles": {
                user_id: profile.model_dump() for user_id, profile in self._profiles.items()
            }
        }
        with open(save_path, "w") as f:
            json.dump(data, f)
