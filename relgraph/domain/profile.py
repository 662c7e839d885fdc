"""Profile domain models owned by the identity store."""

from pydantic import BaseModel, computed_field


class Profile(BaseModel):
    """Represents a user identity as stored by the identity collaborator.

    Attributes:
        id: Identity string
        first_name: Given name
        last_name: Family name
        profile_picture: URL of the profile picture, if any
        headline: Short professional headline, if any
        connection_count: Number of connected edges touching this identity
        is_premium: Premium users are exempt from the connection limit
    """

    id: str
    first_name: str
    last_name: str = ""
    profile_picture: str | None = None
    headline: str | None = None
    connection_count: int = 0
    is_premium: bool = False

    def display_info(self) -> "DisplayInfo":
        return DisplayInfo(
            user_id=self.id,
            first_name=self.first_name,
            last_name=self.last_name,
            profile_picture=self.profile_picture,
            headline=self.headline,
        )


class DisplayInfo(BaseModel):
    """Subset of a profile needed to render a relationship row."""

    user_id: str
    first_name: str
    last_name: str = ""
    profile_picture: str | None = None
    headline: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def username(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def matches_name(self, name_filter: str) -> bool:
        needle = name_filter.lower()
        return needle in self.first_name.lower() or needle in self.last_name.lower()

    def matches_full_name(self, query: str) -> bool:
        return query.lower() in f"{self.first_name} {self.last_name}".lower()
