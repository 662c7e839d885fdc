import asyncio
import json
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List

from loguru import logger

from relgraph.domain.edge import (
    ALLOWED_TRANSITIONS,
    EdgeKind,
    RelationshipEdge,
    SlotKey,
    slot_key,
)
from relgraph.domain.errors import EdgeNotFoundError, PairBlockedError, SlotTakenError
from relgraph.edge_store.base import EdgeStore, Role


class LocalEdgeStore(EdgeStore):
    """Local edge store that keeps edges in memory and persists them to a JSON file."""

    def __init__(self, filepath: str | Path | None = None) -> None:
        """Initialize LocalEdgeStore.

        Args:
            filepath: Path to edge store file. If provided and exists, will auto-load.
                     If provided and doesn't exist, will save to this path when save() is called.
                     If not provided, creates empty store in memory only.
        """
        self._filepath = str(filepath) if filepath else None
        self._lock = asyncio.Lock()
        self._edges: Dict[str, RelationshipEdge] = {}
        self._slots: Dict[SlotKey, str] = {}

        if self._filepath and Path(self._filepath).exists():
            with open(self._filepath, "r") as f:
                data = json.load(f)
            for edge_data in data["edges"]:
                self._index(RelationshipEdge(**edge_data))

    @classmethod
    def from_data(cls, edges: Iterable[RelationshipEdge] | None = None) -> "LocalEdgeStore":
        """Create LocalEdgeStore from provided edges (useful for testing).

        Slot uniqueness is not enforced here, so tests can seed states the services
        would never produce.
        """
        instance = cls(filepath=None)
        for edge in edges or []:
            instance._edges[edge.id] = edge
            instance._slots.setdefault(edge.slot, edge.id)
        return instance

    def _index(self, edge: RelationshipEdge) -> None:
        if edge.slot in self._slots:
            raise SlotTakenError(edge.slot)
        self._edges[edge.id] = edge
        self._slots[edge.slot] = edge.id

    def _unindex(self, edge: RelationshipEdge) -> None:
        del self._edges[edge.id]
        if self._slots.get(edge.slot) == edge.id:
            del self._slots[edge.slot]

    async def get_edge(
        self, initiator: str, target: str, kind: EdgeKind
    ) -> RelationshipEdge | None:
        for edge in self._edges.values():
            if edge.initiator == initiator and edge.target == target and edge.kind is kind:
                return edge
        return None

    async def find_between(
        self, first: str, second: str, kinds: Iterable[EdgeKind] | None = None
    ) -> List[RelationshipEdge]:
        wanted = set(kinds) if kinds is not None else None
        return [
            edge
            for edge in self._edges.values()
            if {edge.initiator, edge.target} == {first, second}
            and (wanted is None or edge.kind in wanted)
        ]

    def _is_blocked(self, first: str, second: str) -> bool:
        edge_id = self._slots.get(slot_key(first, second, EdgeKind.BLOCKED))
        return edge_id is not None and self._edges[edge_id].kind is EdgeKind.BLOCKED

    async def insert_if_absent(
        self, edge: RelationshipEdge, *, unless_blocked: bool = False
    ) -> RelationshipEdge:
        async with self._lock:
            if unless_blocked and self._is_blocked(edge.initiator, edge.target):
                raise PairBlockedError(edge.initiator, edge.target)
            self._index(edge)
        logger.debug(f"Inserted {edge.kind.value} edge {edge.initiator} -> {edge.target}")
        return edge

    async def transition(
        self,
        edge_id: str,
        *,
        expected: EdgeKind,
        kind: EdgeKind,
        created_at: datetime | None = None,
    ) -> RelationshipEdge:
        if kind not in ALLOWED_TRANSITIONS[expected]:
            raise ValueError(f"Cannot move an edge from {expected.value} to {kind.value}")

        async with self._lock:
            edge = self._edges.get(edge_id)
            if edge is None or edge.kind is not expected:
                raise EdgeNotFoundError(edge_id)
            update: dict = {"kind": kind}
            if created_at is not None:
                update["created_at"] = created_at
            # kinds in ALLOWED_TRANSITIONS share a track, so the slot key is unchanged
            updated = edge.model_copy(update=update)
            self._edges[edge_id] = updated
        return updated

    async def delete(self, edge_id: str) -> RelationshipEdge:
        async with self._lock:
            edge = self._edges.get(edge_id)
            if edge is None:
                raise EdgeNotFoundError(edge_id)
            self._unindex(edge)
        return edge

    async def delete_between(
        self, first: str, second: str, *, replacement: RelationshipEdge | None = None
    ) -> List[RelationshipEdge]:
        async with self._lock:
            removed = [
                edge
                for edge in self._edges.values()
                if {edge.initiator, edge.target} == {first, second}
            ]
            if replacement is not None and any(e.kind is replacement.kind for e in removed):
                raise SlotTakenError(replacement.slot)
            for edge in removed:
                self._unindex(edge)
            if replacement is not None:
                self._index(replacement)
        return removed

    def _matching(self, participant: str, kinds: Iterable[EdgeKind], role: Role):
        wanted = set(kinds)
        for edge in self._edges.values():
            if edge.kind not in wanted:
                continue
            if role == "initiator" and edge.initiator != participant:
                continue
            if role == "target" and edge.target != participant:
                continue
            if role == "any" and not edge.involves(participant):
                continue
            yield edge

    async def scan(
        self,
        participant: str,
        kinds: Iterable[EdgeKind],
        *,
        role: Role = "any",
        newest_first: bool | None = None,
        skip: int = 0,
        limit: int | None = None,
    ) -> List[RelationshipEdge]:
        edges = list(self._matching(participant, kinds, role))
        if newest_first is not None:
            edges.sort(key=lambda e: (e.created_at, e.id), reverse=newest_first)
        end = None if limit is None else skip + limit
        return edges[skip:end]

    async def count(
        self, participant: str, kinds: Iterable[EdgeKind], *, role: Role = "any"
    ) -> int:
        return sum(1 for _ in self._matching(participant, kinds, role))

    async def find_partners(
        self,
        participant: str,
        kinds: Iterable[EdgeKind] | None = None,
        among: Iterable[str] | None = None,
    ) -> set[str]:
        partners = {
            edge.other(participant)
            for edge in self._matching(participant, kinds or list(EdgeKind), "any")
        }
        if among is not None:
            partners &= set(among)
        return partners

    async def get_all_edges(self) -> List[RelationshipEdge]:
        return list(self._edges.values())

    def save(self, filepath: str | None = None) -> None:
        """Save the edge store to a JSON file.

        Args:
            filepath: Path to save to. If not provided, uses the filepath from initialization.
        """
        save_path = filepath or self._filepath
        if not save_path:
            raise ValueError(
                "No filepath provided and no default filepath set during initialization"
            )

        save_path = str(save_path)
        data = {"edges": [edge.model_dump(mode="json") for edge in self._edges.values()]}
        with open(save_path, "w") as f:
            json.dump(data, f)
