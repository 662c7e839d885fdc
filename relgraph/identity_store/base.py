from typing import Iterable, List, Protocol

from relgraph.domain.profile import DisplayInfo, Profile


class IdentityStore(Protocol):
    """Protocol for the identity collaborator.

    Every change to a profile's ``connection_count`` goes through this protocol.
    """

    async def exists(self, user_id: str) -> bool:
        """Check whether an identity exists."""
        ...

    async def get_profile(self, user_id: str) -> Profile | None:
        """Get a profile by identity."""
        ...

    async def increment_connection_count(self, user_id: str, delta: int) -> int:
        """Add ``delta`` to the connection counter and return the new value."""
        ...

    async def set_connection_count(self, user_id: str, value: int) -> None:
        """Overwrite the connection counter (used by the repair pass)."""
        ...

    async def batch_fetch_display_info(self, user_ids: Iterable[str]) -> dict[str, DisplayInfo]:
        """Get display data for many identities in one call.

        Args:
            user_ids: Identities to fetch

        Returns:
            Dictionary mapping identity to DisplayInfo for all found identities
        """
        ...

    async def list_profiles(
        self, *, exclude: Iterable[str] = (), skip: int = 0, limit: int | None = None
    ) -> List[Profile]:
        """Get profiles ordered by identity, skipping excluded identities."""
        ...

    async def get_all_profile_ids(self) -> set[str]:
        """Get every known identity."""
        ...

    def save(self, filepath: str | None = None) -> None:
        """Save the identity store to disk."""
        ...
