"""Relationship edge domain models."""

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Tuple
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator

from relgraph.domain.errors import InvalidArgumentError

IDENTITY_PATTERN = re.compile(r"^[A-Za-z0-9_\-]{1,64}$")


class EdgeKind(str, Enum):
    PENDING = "pending"
    CONNECTED = "connected"
    IGNORED = "ignored"
    FOLLOWING = "following"
    BLOCKED = "blocked"

    @property
    def track(self) -> "Track":
        if self is EdgeKind.FOLLOWING:
            return Track.FOLLOWING
        return Track.CONNECTION


class Track(str, Enum):
    """Independent slots an edge can occupy for a pair of identities.

    The connection track holds at most one of pending/connected/ignored/blocked per
    unordered pair. The following track holds at most one edge per ordered pair.
    """

    CONNECTION = "connection"
    FOLLOWING = "following"


# kind -> kinds it may move to in place
ALLOWED_TRANSITIONS: dict[EdgeKind, frozenset[EdgeKind]] = {
    EdgeKind.PENDING: frozenset({EdgeKind.CONNECTED, EdgeKind.IGNORED}),
    EdgeKind.CONNECTED: frozenset(),
    EdgeKind.IGNORED: frozenset(),
    EdgeKind.FOLLOWING: frozenset(),
    EdgeKind.BLOCKED: frozenset(),
}

SlotKey = Tuple[str, str, Track]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def validate_identity(value: str, name: str = "user") -> str:
    """Reject identifiers that could never name a stored identity."""
    if not isinstance(value, str) or not IDENTITY_PATTERN.match(value):
        raise InvalidArgumentError(f"Invalid {name} id: {value!r}")
    return value


def slot_key(initiator: str, target: str, kind: EdgeKind) -> SlotKey:
    """Key of the unique slot an edge of ``kind`` occupies for the pair."""
    if kind.track is Track.CONNECTION:
        low, high = sorted((initiator, target))
        return (low, high, Track.CONNECTION)
    return (initiator, target, Track.FOLLOWING)


class RelationshipEdge(BaseModel):
    """A directed relationship record between two identities.

    Attributes:
        id: Synthetic identifier assigned at creation
        initiator: Identity that created the edge
        target: Identity the edge points to
        kind: State of the edge
        created_at: Creation time, re-stamped when a pending request is accepted
    """

    id: str = Field(default_factory=lambda: uuid4().hex)
    initiator: str
    target: str
    kind: EdgeKind
    created_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def _reject_self_edge(self) -> "RelationshipEdge":
        if self.initiator == self.target:
            raise ValueError("An edge cannot point from an identity to itself")
        return self

    @property
    def slot(self) -> SlotKey:
        return slot_key(self.initiator, self.target, self.kind)

    def involves(self, user_id: str) -> bool:
        return user_id in (self.initiator, self.target)

    def other(self, user_id: str) -> str:
        """Return the participant that is not ``user_id``."""
        return self.target if self.initiator == user_id else self.initiator
