from typing import List

from fastapi import APIRouter, Depends, Query, Response, status

from relgraph.api.auth import get_caller_dependency
from relgraph.api.schemas import EdgeResponse, TargetUserRequest, UpdateRequest
from relgraph.config import settings
from relgraph.domain.listing import ListedUser, RelationshipCounts
from relgraph.domain.status import RelationshipView
from relgraph.identity_store.base import IdentityStore
from relgraph.services.listing import ListingService
from relgraph.services.relationships import RelationshipService
from relgraph.services.status import StatusResolver


def _create_write_routes(router: APIRouter, relationships: RelationshipService, get_caller):
    """Register the routes that change relationships."""

    @router.post("", status_code=status.HTTP_201_CREATED)
    async def request_connection(
        body: TargetUserRequest, caller: str = Depends(get_caller)
    ) -> EdgeResponse:
        edge = await relationships.request_connection(caller, body.user_id)
        return EdgeResponse.from_edge(edge)

    @router.delete("/{user_id}/pending", status_code=status.HTTP_204_NO_CONTENT)
    async def withdraw_request(user_id: str, caller: str = Depends(get_caller)) -> Response:
        await relationships.withdraw_request(caller, user_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @router.patch("/{user_id}")
    async def update_request(
        user_id: str, body: UpdateRequest, caller: str = Depends(get_caller)
    ) -> EdgeResponse:
        edge = await relationships.accept_or_ignore(caller, user_id, body.is_accept)
        return EdgeResponse.from_edge(edge)

    @router.post("/{user_id}/complete")
    async def complete_acceptance(user_id: str, caller: str = Depends(get_caller)) -> EdgeResponse:
        edge = await relationships.complete_acceptance(caller, user_id)
        return EdgeResponse.from_edge(edge)

    @router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def remove_connection(user_id: str, caller: str = Depends(get_caller)) -> Response:
        await relationships.remove_connection(caller, user_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @router.post("/follow", status_code=status.HTTP_201_CREATED)
    async def follow(body: TargetUserRequest, caller: str = Depends(get_caller)) -> EdgeResponse:
        edge = await relationships.follow(caller, body.user_id)
        return EdgeResponse.from_edge(edge)

    @router.delete("/unfollow/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def unfollow(user_id: str, caller: str = Depends(get_caller)) -> Response:
        await relationships.unfollow(caller, user_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @router.post("/block", status_code=status.HTTP_201_CREATED)
    async def block(body: TargetUserRequest, caller: str = Depends(get_caller)) -> EdgeResponse:
        edge = await relationships.block(caller, body.user_id)
        return EdgeResponse.from_edge(edge)

    @router.delete("/unblock/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def unblock(user_id: str, caller: str = Depends(get_caller)) -> Response:
        await relationships.unblock(caller, user_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)


def _create_read_routes(
    router: APIRouter, listing: ListingService, resolver: StatusResolver, get_caller
):
    """Register the listing and status routes."""

    @router.get("/list")
    async def list_connections(
        caller: str = Depends(get_caller),
        user_id: str | None = None,
        page: int = 1,
        limit: int = Query(default=settings.default_page_size),
        by: str = "created_at",
        direction: str = "desc",
        name: str | None = None,
    ) -> List[ListedUser]:
        name = name.strip() if name else None
        return await listing.list_connections(
            user_id or caller,
            page=page,
            page_size=limit,
            sort_by=by,
            direction=direction,
            name_filter=name,
            viewer=caller,
        )

    @router.get("/pending")
    async def list_pending_requests(
        caller: str = Depends(get_caller),
        page: int = 1,
        limit: int = Query(default=settings.default_page_size),
    ) -> List[ListedUser]:
        return await listing.list_pending_requests(caller, page=page, page_size=limit)

    @router.get("/sent")
    async def list_sent_requests(
        caller: str = Depends(get_caller),
        page: int = 1,
        limit: int = Query(default=settings.default_page_size),
    ) -> List[ListedUser]:
        return await listing.list_sent_requests(caller, page=page, page_size=limit)

    @router.get("/followers")
    async def list_followers(
        caller: str = Depends(get_caller),
        page: int = 1,
        limit: int = Query(default=settings.default_page_size),
    ) -> List[ListedUser]:
        return await listing.list_followers(caller, page=page, page_size=limit)

    @router.get("/following")
    async def list_following(
        caller: str = Depends(get_caller),
        page: int = 1,
        limit: int = Query(default=settings.default_page_size),
    ) -> List[ListedUser]:
        return await listing.list_following(caller, page=page, page_size=limit)

    @router.get("/blocked")
    async def list_blocked(
        caller: str = Depends(get_caller),
        page: int = 1,
        limit: int = Query(default=settings.default_page_size),
    ) -> List[ListedUser]:
        return await listing.list_blocked(caller, page=page, page_size=limit)

    @router.get("/recommended")
    async def list_recommended(
        caller: str = Depends(get_caller),
        page: int = 1,
        limit: int = Query(default=settings.default_page_size),
    ) -> List[ListedUser]:
        return await listing.list_recommended(caller, page=page, page_size=limit)

    @router.get("/users")
    async def search_users(
        caller: str = Depends(get_caller),
        name: str = "",
        page: int = 1,
        limit: int = Query(default=settings.default_page_size),
    ) -> List[ListedUser]:
        return await listing.search_users(caller, name, page=page, page_size=limit)

    @router.get("/counts")
    async def relationship_counts(caller: str = Depends(get_caller)) -> RelationshipCounts:
        return await listing.relationship_counts(caller)

    @router.get("/status/{user_id}")
    async def relationship_status(
        user_id: str, caller: str = Depends(get_caller)
    ) -> RelationshipView:
        return await resolver.resolve_both(caller, user_id)


def get_connections_router(
    *,
    relationships: RelationshipService,
    listing: ListingService,
    resolver: StatusResolver,
    identity_store: IdentityStore,
) -> APIRouter:
    router = APIRouter(prefix="/connections")
    get_caller = get_caller_dependency(identity_store)

    # read routes first so fixed paths like /list win over /{user_id}
    _create_read_routes(router, listing, resolver, get_caller)
    _create_write_routes(router, relationships, get_caller)

    return router


def get_health_router() -> APIRouter:
    router = APIRouter()

    @router.get("/health")
    async def health_check():
        return {"status": "healthy"}

    return router
