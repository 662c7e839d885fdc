"""Paginated relationship listings enriched with display data."""

from typing import List

from relgraph.domain.edge import EdgeKind, RelationshipEdge, validate_identity
from relgraph.domain.errors import InvalidArgumentError
from relgraph.domain.listing import ListedUser, RelationshipCounts, SortBy, SortDirection
from relgraph.edge_store.base import EdgeStore, Role
from relgraph.identity_store.base import IdentityStore
from relgraph.services.guard import guarded


class ListingService:
    """Lists a user's connections, requests, follows and blocks.

    Display data for a page is fetched with a single identity store call, and the
    ``is_connected`` flag with a single edge store query, whatever the page size.
    """

    def __init__(
        self,
        *,
        edge_store: EdgeStore,
        identity_store: IdentityStore,
        max_page_size: int | None = None,
    ):
        self.edge_store = edge_store
        self.identity_store = identity_store
        self.max_page_size = max_page_size

    def _check_page(self, page: int, page_size: int) -> int:
        """Validate paging parameters and return the number of rows to skip."""
        if page < 1:
            raise InvalidArgumentError("page must be at least 1")
        if page_size < 1:
            raise InvalidArgumentError("page_size must be at least 1")
        if self.max_page_size is not None and page_size > self.max_page_size:
            raise InvalidArgumentError(f"page_size must be at most {self.max_page_size}")
        return (page - 1) * page_size

    async def _enrich(self, subject: str, edges: List[RelationshipEdge]) -> List[ListedUser]:
        """Turn edges into rows describing the other participant.

        Edges whose other participant has no profile are dropped.
        """
        if not edges:
            return []
        others = [edge.other(subject) for edge in edges]
        display = await self.identity_store.batch_fetch_display_info(others)
        return [
            ListedUser(
                **display[other].model_dump(exclude={"username"}),
                created_at=edge.created_at,
            )
            for edge, other in zip(edges, others)
            if other in display
        ]

    async def _list_edges(
        self, subject: str, kind: EdgeKind, role: Role, page: int, page_size: int
    ) -> List[ListedUser]:
        validate_identity(subject)
        skip = self._check_page(page, page_size)
        # paginate after enrichment so rows without a profile never shorten a page
        edges = await self.edge_store.scan(subject, [kind], role=role, newest_first=True)
        rows = await self._enrich(subject, edges)
        return rows[skip : skip + page_size]

    @guarded("Failed to retrieve list of connections.")
    async def list_connections(
        self,
        subject: str,
        page: int = 1,
        page_size: int = 10,
        sort_by: SortBy | str | int | None = SortBy.CREATED_AT,
        direction: SortDirection | str | int | None = SortDirection.DESC,
        name_filter: str | None = None,
        viewer: str | None = None,
    ) -> List[ListedUser]:
        """List the identities connected to ``subject``.

        Args:
            subject: Identity whose connections are listed
            page: 1-based page number
            page_size: Rows per page
            sort_by: Sort key; unknown keys sort by connection time
            direction: Sort direction
            name_filter: Case-insensitive substring matched against first or last name
            viewer: When given, each row's ``is_connected`` tells whether the viewer is
                connected to that row

        Returns:
            One page of rows
        """
        validate_identity(subject)
        if viewer is not None:
            validate_identity(viewer)
        skip = self._check_page(page, page_size)
        sort_by = SortBy.parse(sort_by)
        direction = SortDirection.parse(direction)

        edges = await self.edge_store.scan(subject, [EdgeKind.CONNECTED])
        rows = await self._enrich(subject, edges)

        if name_filter:
            rows = [row for row in rows if row.matches_name(name_filter)]

        if sort_by is SortBy.FIRST_NAME:
            rows.sort(key=lambda r: (r.first_name.lower(), r.user_id))
        elif sort_by is SortBy.LAST_NAME:
            rows.sort(key=lambda r: (r.last_name.lower(), r.user_id))
        else:
            rows.sort(key=lambda r: (r.created_at, r.user_id))
        if direction is SortDirection.DESC:
            rows.reverse()

        rows = rows[skip : skip + page_size]

        if viewer is not None and rows:
            connected = await self.edge_store.find_partners(
                viewer, [EdgeKind.CONNECTED], among=[row.user_id for row in rows]
            )
            for row in rows:
                row.is_connected = row.user_id in connected
        return rows

    @guarded("Failed to retrieve list of pending connection requests.")
    async def list_pending_requests(
        self, subject: str, page: int = 1, page_size: int = 10
    ) -> List[ListedUser]:
        """List pending requests received by ``subject``, newest first."""
        return await self._list_edges(subject, EdgeKind.PENDING, "target", page, page_size)

    @guarded("Failed to retrieve list of sent connection requests.")
    async def list_sent_requests(
        self, subject: str, page: int = 1, page_size: int = 10
    ) -> List[ListedUser]:
        """List pending requests sent by ``subject``, newest first."""
        return await self._list_edges(subject, EdgeKind.PENDING, "initiator", page, page_size)

    @guarded("Failed to retrieve list of followers.")
    async def list_followers(
        self, subject: str, page: int = 1, page_size: int = 10
    ) -> List[ListedUser]:
        return await self._list_edges(subject, EdgeKind.FOLLOWING, "target", page, page_size)

    @guarded("Failed to retrieve list of followed users.")
    async def list_following(
        self, subject: str, page: int = 1, page_size: int = 10
    ) -> List[ListedUser]:
        return await self._list_edges(subject, EdgeKind.FOLLOWING, "initiator", page, page_size)

    @guarded("Failed to retrieve list of blocked users.")
    async def list_blocked(
        self, subject: str, page: int = 1, page_size: int = 10
    ) -> List[ListedUser]:
        return await self._list_edges(subject, EdgeKind.BLOCKED, "initiator", page, page_size)

    @guarded("Failed to retrieve people you may know.")
    async def list_recommended(
        self, subject: str, page: int = 1, page_size: int = 10
    ) -> List[ListedUser]:
        """List identities with no edge of any kind to ``subject``, ordered by identity."""
        validate_identity(subject)
        skip = self._check_page(page, page_size)
        excluded = await self.edge_store.find_partners(subject)
        excluded.add(subject)
        profiles = await self.identity_store.list_profiles(
            exclude=excluded, skip=skip, limit=page_size
        )
        return [
            ListedUser(**profile.display_info().model_dump(exclude={"username"}))
            for profile in profiles
        ]

    @guarded("Failed to retrieve list of users.")
    async def search_users(
        self, subject: str, name: str, page: int = 1, page_size: int = 10
    ) -> List[ListedUser]:
        """Search identities by name on behalf of ``subject``.

        Args:
            subject: Identity running the search
            name: Case-insensitive substring matched against ``"first last"``
            page: 1-based page number over the matches
            page_size: Rows per page

        Returns:
            One page of matching rows ordered by identity. Identities blocked by or
            blocking ``subject`` are left out.
        """
        validate_identity(subject)
        skip = self._check_page(page, page_size)
        name = name.strip() if name else ""
        if not name:
            raise InvalidArgumentError("A name filter must be provided.")

        blocked = await self.edge_store.find_partners(subject, [EdgeKind.BLOCKED])
        profiles = await self.identity_store.list_profiles(exclude=blocked)
        matches = [
            info
            for info in (profile.display_info() for profile in profiles)
            if info.matches_full_name(name)
        ]
        return [
            ListedUser(**info.model_dump(exclude={"username"}))
            for info in matches[skip : skip + page_size]
        ]

    @guarded("Failed to count relationships.")
    async def relationship_counts(self, subject: str) -> RelationshipCounts:
        validate_identity(subject)
        return RelationshipCounts(
            connections=await self.edge_store.count(subject, [EdgeKind.CONNECTED]),
            followers=await self.edge_store.count(subject, [EdgeKind.FOLLOWING], role="target"),
            following=await self.edge_store.count(
                subject, [EdgeKind.FOLLOWING], role="initiator"
            ),
            pending=await self.edge_store.count(subject, [EdgeKind.PENDING], role="target"),
        )
