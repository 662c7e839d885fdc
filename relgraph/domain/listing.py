"""Listing domain models: sort options and result rows."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel

from relgraph.domain.profile import DisplayInfo


class SortBy(str, Enum):
    CREATED_AT = "created_at"
    FIRST_NAME = "first_name"
    LAST_NAME = "last_name"

    @classmethod
    def parse(cls, value: "str | int | SortBy | None") -> "SortBy":
        """Parse a sort key; numeric codes 1-3 are accepted, anything unknown is created_at."""
        if isinstance(value, SortBy):
            return value
        by_code = {1: cls.CREATED_AT, 2: cls.FIRST_NAME, 3: cls.LAST_NAME}
        if isinstance(value, int):
            return by_code.get(value, cls.CREATED_AT)
        if isinstance(value, str):
            if value.isdigit():
                return by_code.get(int(value), cls.CREATED_AT)
            try:
                return cls(value.lower())
            except ValueError:
                return cls.CREATED_AT
        return cls.CREATED_AT


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, value: "str | int | SortDirection | None") -> "SortDirection":
        """Parse a direction; ``1``/``asc`` is ascending, everything else descending."""
        if isinstance(value, SortDirection):
            return value
        if value in (1, "1") or (isinstance(value, str) and value.lower() == "asc"):
            return cls.ASC
        return cls.DESC


class ListedUser(DisplayInfo):
    """A row in a relationship listing.

    Attributes:
        created_at: Creation time of the edge that put the user in the listing
        is_connected: Whether the viewer is connected to this user, when requested
    """

    created_at: datetime | None = None
    is_connected: bool | None = None


class RelationshipCounts(BaseModel):
    connections: int
    followers: int
    following: int
    pending: int
