"""Read-side resolution of the relationship label between a viewer and a subject."""

from relgraph.domain.edge import EdgeKind, validate_identity
from relgraph.domain.status import RelationshipStatus, RelationshipView
from relgraph.edge_store.base import EdgeStore
from relgraph.services.guard import guarded


class StatusResolver:
    """Computes display labels with a fixed precedence.

    Connected outranks an outbound request, which outranks an inbound request. The order
    holds even if the stored edges ever contradict each other.
    """

    def __init__(self, edge_store: EdgeStore):
        self.edge_store = edge_store

    @guarded("Failed to resolve relationship status.")
    async def resolve(self, viewer: str, subject: str) -> RelationshipStatus:
        validate_identity(viewer)
        validate_identity(subject)

        if viewer == subject:
            return RelationshipStatus.OWNER
        if await self.edge_store.find_between(viewer, subject, [EdgeKind.CONNECTED]):
            return RelationshipStatus.CONNECTED
        # ignored requests look pending to the requester
        if await self.edge_store.get_edge(viewer, subject, EdgeKind.PENDING):
            return RelationshipStatus.PENDING
        if await self.edge_store.get_edge(viewer, subject, EdgeKind.IGNORED):
            return RelationshipStatus.PENDING
        if await self.edge_store.get_edge(subject, viewer, EdgeKind.PENDING):
            return RelationshipStatus.REQUEST
        return RelationshipStatus.NONE

    @guarded("Failed to resolve follow status.")
    async def resolve_follow(self, viewer: str, subject: str) -> RelationshipStatus:
        validate_identity(viewer)
        validate_identity(subject)

        if viewer == subject:
            return RelationshipStatus.OWNER
        if await self.edge_store.get_edge(viewer, subject, EdgeKind.FOLLOWING):
            return RelationshipStatus.FOLLOWING
        return RelationshipStatus.NONE

    @guarded("Failed to resolve relationship view.")
    async def resolve_both(self, viewer: str, subject: str) -> RelationshipView:
        """Resolve connection and follow status together, plus whether the pair is blocked."""
        connection = await self.resolve(viewer, subject)
        follow = await self.resolve_follow(viewer, subject)
        blocked = viewer != subject and bool(
            await self.edge_store.find_between(viewer, subject, [EdgeKind.BLOCKED])
        )
        return RelationshipView(connection=connection, follow=follow, blocked=blocked)
