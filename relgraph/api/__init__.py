from contextlib import asynccontextmanager
from typing import AsyncContextManager, AsyncIterator, Callable

from fastapi import FastAPI
from loguru import logger

from relgraph.api.endpoints import get_connections_router, get_health_router
from relgraph.api.errors import register_error_handlers
from relgraph.config import settings
from relgraph.edge_store.base import EdgeStore
from relgraph.identity_store.base import IdentityStore
from relgraph.services.listing import ListingService
from relgraph.services.relationships import RelationshipService
from relgraph.services.status import StatusResolver


def persist_on_shutdown(
    edge_store: EdgeStore, identity_store: IdentityStore
) -> Callable[[FastAPI], AsyncContextManager[None]]:
    """Create a lifespan that saves both stores when the app shuts down."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        logger.info("Saving edge and identity stores")
        edge_store.save()
        identity_store.save()

    return lifespan


def create_app(
    *,
    edge_store: EdgeStore,
    identity_store: IdentityStore,
    lifespan: Callable[[FastAPI], AsyncContextManager[None]] | None = None,
) -> FastAPI:
    """Create FastAPI app."""
    app = FastAPI(lifespan=lifespan)

    relationships = RelationshipService(
        edge_store=edge_store,
        identity_store=identity_store,
        connection_limit=settings.connection_limit,
    )
    listing = ListingService(
        edge_store=edge_store,
        identity_store=identity_store,
        max_page_size=settings.max_page_size,
    )
    resolver = StatusResolver(edge_store)

    register_error_handlers(app)

    app.include_router(router=get_health_router())
    app.include_router(
        router=get_connections_router(
            relationships=relationships,
            listing=listing,
            resolver=resolver,
            identity_store=identity_store,
        )
    )

    return app
