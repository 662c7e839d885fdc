"""CLI for recomputing every profile's connection count from the stored connected edges"""

import argparse
import asyncio

from loguru import logger

from relgraph.config import settings
from relgraph.edge_store.local import LocalEdgeStore
from relgraph.identity_store.local import LocalIdentityStore
from relgraph.services.relationships import RelationshipService


def main(edge_store_path: str, identity_store_path: str, user_ids: list[str] | None) -> None:
    edge_store = LocalEdgeStore(filepath=edge_store_path)
    identity_store = LocalIdentityStore(filepath=identity_store_path)
    service = RelationshipService(edge_store=edge_store, identity_store=identity_store)

    repaired = asyncio.run(service.repair_connection_counts(user_ids))
    for user_id, count in repaired.items():
        logger.info(f"{user_id}: {count}")

    identity_store.save()


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--edge-store",
        type=str,
        required=False,
        help="Local edge store file",
        default=settings.edge_store_path,
    )
    parser.add_argument(
        "--identity-store",
        type=str,
        required=False,
        help="Local identity store file",
        default=settings.identity_store_path,
    )
    parser.add_argument(
        "--user-id",
        action="append",
        dest="user_ids",
        help="Identity to repair, may be repeated. Defaults to every identity",
    )

    args = parser.parse_args()

    main(
        edge_store_path=args.edge_store,
        identity_store_path=args.identity_store,
        user_ids=args.user_ids,
    )
