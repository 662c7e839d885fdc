from datetime import datetime
from typing import Iterable, List, Literal, Protocol

from relgraph.domain.edge import EdgeKind, RelationshipEdge

Role = Literal["initiator", "target", "any"]


class EdgeStore(Protocol):
    """Protocol for relationship edge storage.

    Implementations must keep a unique index over ``RelationshipEdge.slot`` so that
    ``insert_if_absent`` is the single atomic check-and-insert for a pair.
    """

    async def get_edge(
        self, initiator: str, target: str, kind: EdgeKind
    ) -> RelationshipEdge | None:
        """Get the edge with exactly this direction and kind."""
        ...

    async def find_between(
        self, first: str, second: str, kinds: Iterable[EdgeKind] | None = None
    ) -> List[RelationshipEdge]:
        """Get edges between two identities in either direction, optionally filtered by kind."""
        ...

    async def insert_if_absent(
        self, edge: RelationshipEdge, *, unless_blocked: bool = False
    ) -> RelationshipEdge:
        """Insert an edge unless its slot is taken.

        With ``unless_blocked`` the insert also fails while a blocked edge holds the pair's
        connection slot, checked in the same atomic step.

        Raises:
            SlotTakenError: If another edge already occupies the slot
            PairBlockedError: If ``unless_blocked`` is set and the pair is blocked
        """
        ...

    async def transition(
        self,
        edge_id: str,
        *,
        expected: EdgeKind,
        kind: EdgeKind,
        created_at: datetime | None = None,
    ) -> RelationshipEdge:
        """Change an edge's kind in place if it still has the expected kind.

        Raises:
            EdgeNotFoundError: If the edge is gone or no longer has the expected kind
            ValueError: If the transition is not allowed
        """
        ...

    async def delete(self, edge_id: str) -> RelationshipEdge:
        """Delete an edge by id and return it.

        Raises:
            EdgeNotFoundError: If the edge does not exist
        """
        ...

    async def delete_between(
        self, first: str, second: str, *, replacement: RelationshipEdge | None = None
    ) -> List[RelationshipEdge]:
        """Delete every edge between two identities and return them.

        When ``replacement`` is given it is inserted in the same atomic step. Nothing is
        deleted if an edge of the replacement's kind already exists between the pair.

        Raises:
            SlotTakenError: If an edge of the replacement's kind already exists
        """
        ...

    async def scan(
        self,
        participant: str,
        kinds: Iterable[EdgeKind],
        *,
        role: Role = "any",
        newest_first: bool | None = None,
        skip: int = 0,
        limit: int | None = None,
    ) -> List[RelationshipEdge]:
        """Get edges touching a participant, optionally sorted by creation time and paginated."""
        ...

    async def count(
        self, participant: str, kinds: Iterable[EdgeKind], *, role: Role = "any"
    ) -> int:
        """Count edges touching a participant."""
        ...

    async def find_partners(
        self,
        participant: str,
        kinds: Iterable[EdgeKind] | None = None,
        among: Iterable[str] | None = None,
    ) -> set[str]:
        """Get the other participants of a participant's edges in a single query.

        Args:
            participant: Identity whose edges are inspected
            kinds: Only consider these kinds (all kinds if omitted)
            among: Only report partners contained in this collection

        Returns:
            Set of partner identities
        """
        ...

    async def get_all_edges(self) -> List[RelationshipEdge]:
        """Get every stored edge."""
        ...

    def save(self, filepath: str | None = None) -> None:
        """Save the edge store to disk."""
        ...
