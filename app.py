import sys

from loguru import logger

from relgraph.api import create_app, persist_on_shutdown
from relgraph.config import settings
from relgraph.edge_store.local import LocalEdgeStore
from relgraph.identity_store.local import LocalIdentityStore

logger.configure(handlers=[{"sink": sys.stderr, "level": settings.log_level}])

logger.info("Initializing relationship engine with local edge and identity stores")

edge_store = LocalEdgeStore(settings.edge_store_path)
identity_store = LocalIdentityStore(settings.identity_store_path)
app = create_app(
    edge_store=edge_store,
    identity_store=identity_store,
    lifespan=persist_on_shutdown(edge_store, identity_store),
)
