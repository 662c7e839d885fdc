"""Error taxonomy shared by the stores, the services and the API."""

from typing import Any


class RelationshipError(Exception):
    """Base class for every error the relationship engine reports to callers."""

    code = "relationship_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidArgumentError(RelationshipError):
    code = "invalid_argument"


class NotFoundError(RelationshipError):
    code = "not_found"


class ConflictError(RelationshipError):
    """Raised when a relationship slot is already taken.

    The only error a caller may reasonably retry, after re-reading the current state.
    """

    code = "conflict"


class ForbiddenError(RelationshipError):
    code = "forbidden"


class InternalFailureError(RelationshipError):
    """Normalized stand-in for any non-domain failure (store down, bad data)."""

    code = "internal"


class SlotTakenError(ConflictError):
    """Raised by an edge store when its unique slot index rejects an insert."""

    def __init__(self, slot: Any) -> None:
        super().__init__(f"Relationship slot {slot} is already taken.")
        self.slot = slot


class EdgeNotFoundError(NotFoundError):
    """Raised by an edge store when a conditional write finds no matching edge."""

    def __init__(self, edge_id: str) -> None:
        super().__init__(f"Edge {edge_id} not found.")
        self.edge_id = edge_id


class PartialSuccessError(RelationshipError):
    """An edge write committed but one of its follow-up effects did not.

    The edge stays in place. After an acceptance, ``RelationshipService.complete_acceptance``
    re-applies the follow-up effects without double counting; otherwise
    ``repair_connection_counts`` restores the counters.

    Attributes:
        edge: The committed edge
        completed: Names of the effects that were applied
        failed: Name of the effect that raised
    """

    code = "partial_success"

    def __init__(self, edge: Any, completed: list[str], failed: str) -> None:
        super().__init__(f"The relationship was updated but '{failed}' failed.")
        self.edge = edge
        self.completed = completed
        self.failed = failed


class PairBlockedError(ForbiddenError):
    """Raised by an edge store when an insert guarded against blocks finds the pair blocked."""

    def __init__(self, first: str, second: str) -> None:
        super().__init__(f"Relationship between {first} and {second} is blocked.")
        self.first = first
        self.second = second
