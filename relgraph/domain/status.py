"""Relationship status labels."""

from enum import Enum

from pydantic import BaseModel


class RelationshipStatus(str, Enum):
    OWNER = "owner"
    CONNECTED = "connected"
    FOLLOWING = "following"
    PENDING = "pending"
    REQUEST = "request"
    NONE = "none"


class RelationshipView(BaseModel):
    """Connection and follow status of a subject as seen by a viewer."""

    connection: RelationshipStatus
    follow: RelationshipStatus
    blocked: bool = False
