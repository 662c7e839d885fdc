"""State machine for connection requests, follows and blocks."""

from datetime import datetime
from typing import Awaitable, Callable, Iterable

from loguru import logger

from relgraph.domain.edge import EdgeKind, RelationshipEdge, utcnow, validate_identity
from relgraph.domain.errors import (
    ConflictError,
    ForbiddenError,
    InvalidArgumentError,
    NotFoundError,
    PairBlockedError,
    PartialSuccessError,
    SlotTakenError,
)
from relgraph.edge_store.base import EdgeStore
from relgraph.identity_store.base import IdentityStore
from relgraph.services.guard import committed, guarded

CONNECTION_TRACK = (EdgeKind.PENDING, EdgeKind.CONNECTED, EdgeKind.IGNORED, EdgeKind.BLOCKED)

Effect = tuple[str, Callable[[], Awaitable[object]]]


class RelationshipService:
    """Owns every write to the edge store and to the identity connection counters.

    Validation and existence checks run before the first write. The pair's slot in the
    edge store's unique index decides races between concurrent writers.
    """

    def __init__(
        self,
        *,
        edge_store: EdgeStore,
        identity_store: IdentityStore,
        connection_limit: int | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize the service.

        Args:
            edge_store: Store holding relationship edges
            identity_store: Identity collaborator used for existence checks and counters
            connection_limit: Maximum connections for non-premium users, None disables it
            clock: Source of timestamps for new and accepted edges
        """
        self.edge_store = edge_store
        self.identity_store = identity_store
        self.connection_limit = connection_limit
        self._clock = clock

    async def _require_identity(self, user_id: str) -> None:
        if not await self.identity_store.exists(user_id):
            raise NotFoundError("User not found.")

    async def _check_connection_limit(self, user_id: str) -> None:
        if self.connection_limit is None:
            return
        profile = await self.identity_store.get_profile(user_id)
        if profile and not profile.is_premium and profile.connection_count >= self.connection_limit:
            raise ForbiddenError("User has exceeded the limit on connections.")

    def _validate_pair(self, initiator: str, target: str, self_message: str) -> None:
        validate_identity(initiator)
        validate_identity(target)
        if initiator == target:
            raise InvalidArgumentError(self_message)

    async def _apply_effects(
        self, edge: RelationshipEdge, completed: list[str], effects: Iterable[Effect]
    ) -> None:
        """Apply follow-up effects in order after ``edge`` has been committed.

        The committed edge is authoritative, so a failing effect is reported as a
        partial success instead of being rolled back.
        """
        for name, effect in effects:
            try:
                await committed(effect())
            except Exception as e:
                logger.error(
                    f"Effect '{name}' failed after committing {edge.kind.value} edge {edge.id}: {e}"
                )
                raise PartialSuccessError(edge, list(completed), name) from e
            completed.append(name)

    async def _ensure_following(
        self, follower: str, followee: str
    ) -> RelationshipEdge | None:
        """Create a follow edge unless one already exists or the pair is blocked."""
        edge = RelationshipEdge(
            initiator=follower, target=followee, kind=EdgeKind.FOLLOWING, created_at=self._clock()
        )
        try:
            return await self.edge_store.insert_if_absent(edge, unless_blocked=True)
        except PairBlockedError:
            logger.info(f"Skipped follow {follower} -> {followee}: pair is blocked")
            return None
        except SlotTakenError:
            existing = await self.edge_store.get_edge(follower, followee, EdgeKind.FOLLOWING)
            if existing is None:
                raise
            return existing

    async def _recount(self, user_id: str) -> int:
        count = await self.edge_store.count(user_id, [EdgeKind.CONNECTED])
        await committed(self.identity_store.set_connection_count(user_id, count))
        return count

    @guarded("Failed to request connection.")
    async def request_connection(self, initiator: str, target: str) -> RelationshipEdge:
        """Place a pending connection request from ``initiator`` to ``target``.

        Raises:
            InvalidArgumentError: If both identities are the same or malformed
            NotFoundError: If ``target`` does not exist
            ForbiddenError: If ``initiator`` is at the connection limit
            ConflictError: If the pair already holds a blocked, pending, ignored or
                connected edge, or a concurrent request won the slot
        """
        self._validate_pair(initiator, target, "Cannot request a connection with yourself.")
        await self._require_identity(target)
        await self._check_connection_limit(initiator)

        existing = await self.edge_store.find_between(initiator, target, CONNECTION_TRACK)
        kinds = {edge.kind for edge in existing}
        if EdgeKind.BLOCKED in kinds:
            raise ConflictError("Cannot place a connection request between blocked users.")
        if kinds & {EdgeKind.PENDING, EdgeKind.IGNORED}:
            raise ConflictError(
                "Pending/ignored connection request already established between users."
            )
        if EdgeKind.CONNECTED in kinds:
            raise ConflictError("Connection instance already established between users.")

        edge = RelationshipEdge(
            initiator=initiator, target=target, kind=EdgeKind.PENDING, created_at=self._clock()
        )
        try:
            await committed(self.edge_store.insert_if_absent(edge))
        except SlotTakenError as e:
            logger.info(f"Lost connection request race for {initiator} -> {target}")
            raise ConflictError(
                "A relationship between these users was created concurrently."
            ) from e

        logger.info(f"Connection requested: {initiator} -> {target}")
        return edge

    @guarded("Failed to remove pending request.")
    async def withdraw_request(self, initiator: str, target: str) -> None:
        """Withdraw a pending or ignored request ``initiator`` sent to ``target``."""
        validate_identity(initiator)
        validate_identity(target)
        await self._require_identity(target)

        request = await self.edge_store.get_edge(initiator, target, EdgeKind.PENDING)
        if request is None:
            request = await self.edge_store.get_edge(initiator, target, EdgeKind.IGNORED)
        if request is None:
            raise NotFoundError("Pending connection request was not found.")

        await committed(self.edge_store.delete(request.id))
        logger.info(f"Connection request withdrawn: {initiator} -> {target}")

    @guarded("Failed to update connection request status.")
    async def accept_or_ignore(
        self, accepter: str, requester: str, accept: bool
    ) -> RelationshipEdge:
        """Accept or ignore the pending request ``requester`` sent to ``accepter``.

        Accepting applies, in this order: the transition to connected (re-stamping
        ``created_at``), the requester's counter increment, the accepter's counter
        increment and the accepter's follow of the requester.

        Raises:
            NotFoundError: If ``requester`` does not exist or sent no pending request
            ForbiddenError: If accepting would exceed the accepter's connection limit
            PartialSuccessError: If the connection was made but a later effect failed
        """
        validate_identity(accepter)
        validate_identity(requester)
        await self._require_identity(requester)

        request = await self.edge_store.get_edge(requester, accepter, EdgeKind.PENDING)
        if request is None:
            raise NotFoundError("Connection request was not found.")

        if not accept:
            edge = await committed(
                self.edge_store.transition(
                    request.id, expected=EdgeKind.PENDING, kind=EdgeKind.IGNORED
                )
            )
            logger.info(f"Connection request ignored: {requester} -> {accepter}")
            return edge

        await self._check_connection_limit(accepter)
        edge = await committed(
            self.edge_store.transition(
                request.id,
                expected=EdgeKind.PENDING,
                kind=EdgeKind.CONNECTED,
                created_at=self._clock(),
            )
        )
        logger.info(f"Connection accepted: {requester} <-> {accepter}")

        await self._apply_effects(
            edge,
            ["connect"],
            [
                (
                    "increment_requester_count",
                    lambda: self.identity_store.increment_connection_count(requester, 1),
                ),
                (
                    "increment_accepter_count",
                    lambda: self.identity_store.increment_connection_count(accepter, 1),
                ),
                ("follow_requester", lambda: self._ensure_following(accepter, requester)),
            ],
        )
        return edge

    @guarded("Failed to complete connection acceptance.")
    async def complete_acceptance(self, accepter: str, requester: str) -> RelationshipEdge:
        """Re-apply the follow-up effects of an accepted request.

        Safe to run any number of times: counters are recomputed from the stored edges
        and the follow edge is only created when missing.
        """
        validate_identity(accepter)
        validate_identity(requester)

        edge = await self.edge_store.get_edge(requester, accepter, EdgeKind.CONNECTED)
        if edge is None:
            raise NotFoundError("Connection instance not found.")

        await self._recount(requester)
        await self._recount(accepter)
        await committed(self._ensure_following(accepter, requester))
        logger.info(f"Acceptance effects completed for {requester} <-> {accepter}")
        return edge

    @guarded("Failed to remove connection.")
    async def remove_connection(self, actor: str, other: str) -> None:
        """Remove the connection between two identities, whichever side requested it.

        Follow edges between the pair are left alone.
        """
        validate_identity(actor)
        validate_identity(other)
        await self._require_identity(other)

        connections = await self.edge_store.find_between(actor, other, [EdgeKind.CONNECTED])
        if not connections:
            raise NotFoundError("Connection instance not found.")

        deleted = await committed(self.edge_store.delete(connections[0].id))
        logger.info(f"Connection removed: {actor} x {other}")

        await self._apply_effects(
            deleted,
            ["disconnect"],
            [
                (
                    "decrement_initiator_count",
                    lambda: self.identity_store.increment_connection_count(deleted.initiator, -1),
                ),
                (
                    "decrement_target_count",
                    lambda: self.identity_store.increment_connection_count(deleted.target, -1),
                ),
            ],
        )

    @guarded("Failed to follow user.")
    async def follow(self, initiator: str, target: str) -> RelationshipEdge:
        """Make ``initiator`` follow ``target``.

        Raises:
            InvalidArgumentError: On self-follow
            NotFoundError: If ``target`` does not exist
            ForbiddenError: If either side blocked the other
            ConflictError: If the follow already exists
        """
        self._validate_pair(initiator, target, "Cannot follow yourself.")
        await self._require_identity(target)

        if await self.edge_store.find_between(initiator, target, [EdgeKind.BLOCKED]):
            raise ForbiddenError("Cannot follow a blocked user.")
        if await self.edge_store.get_edge(initiator, target, EdgeKind.FOLLOWING):
            raise ConflictError("Follow instance already exists.")

        edge = RelationshipEdge(
            initiator=initiator, target=target, kind=EdgeKind.FOLLOWING, created_at=self._clock()
        )
        try:
            await committed(self.edge_store.insert_if_absent(edge, unless_blocked=True))
        except PairBlockedError as e:
            raise ForbiddenError("Cannot follow a blocked user.") from e
        except SlotTakenError as e:
            raise ConflictError("Follow instance already exists.") from e

        logger.info(f"Follow created: {initiator} -> {target}")
        return edge

    @guarded("Failed to unfollow user.")
    async def unfollow(self, initiator: str, target: str) -> None:
        validate_identity(initiator)
        validate_identity(target)
        await self._require_identity(target)

        edge = await self.edge_store.get_edge(initiator, target, EdgeKind.FOLLOWING)
        if edge is None:
            raise NotFoundError("Follow instance not found.")

        await committed(self.edge_store.delete(edge.id))
        logger.info(f"Follow removed: {initiator} -> {target}")

    @guarded("Failed to block user.")
    async def block(self, initiator: str, target: str) -> RelationshipEdge:
        """Block ``target``, clearing every other edge between the pair.

        If the pair was connected both counters are decremented afterwards.
        """
        self._validate_pair(initiator, target, "Cannot block yourself.")
        await self._require_identity(target)

        if await self.edge_store.find_between(initiator, target, [EdgeKind.BLOCKED]):
            raise ConflictError("Block instance already exists.")

        block = RelationshipEdge(
            initiator=initiator, target=target, kind=EdgeKind.BLOCKED, created_at=self._clock()
        )
        try:
            removed = await committed(
                self.edge_store.delete_between(initiator, target, replacement=block)
            )
        except SlotTakenError as e:
            raise ConflictError("Block instance already exists.") from e
        logger.info(f"Block created: {initiator} -> {target}, cleared {len(removed)} edges")

        if any(edge.kind is EdgeKind.CONNECTED for edge in removed):
            await self._apply_effects(
                block,
                ["block"],
                [
                    (
                        "decrement_initiator_count",
                        lambda: self.identity_store.increment_connection_count(initiator, -1),
                    ),
                    (
                        "decrement_target_count",
                        lambda: self.identity_store.increment_connection_count(target, -1),
                    ),
                ],
            )
        return block

    @guarded("Failed to unblock user.")
    async def unblock(self, initiator: str, target: str) -> None:
        validate_identity(initiator)
        validate_identity(target)
        await self._require_identity(target)

        edge = await self.edge_store.get_edge(initiator, target, EdgeKind.BLOCKED)
        if edge is None:
            raise NotFoundError("Block instance not found.")

        await committed(self.edge_store.delete(edge.id))
        logger.info(f"Block removed: {initiator} -> {target}")

    @guarded("Failed to repair connection counts.")
    async def repair_connection_counts(
        self, user_ids: Iterable[str] | None = None
    ) -> dict[str, int]:
        """Recompute connection counters from the stored connected edges.

        Args:
            user_ids: Identities to repair. Defaults to every known identity.

        Returns:
            Dictionary mapping identity to its repaired count
        """
        if user_ids is None:
            user_ids = sorted(await self.identity_store.get_all_profile_ids())

        repaired = {}
        for user_id in user_ids:
            repaired[user_id] = await self._recount(user_id)
        logger.info(f"Repaired connection counts for {len(repaired)} identities")
        return repaired
