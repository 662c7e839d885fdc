"""Request and response bodies of the HTTP API."""

from datetime import datetime

from pydantic import BaseModel

from relgraph.domain.edge import EdgeKind, RelationshipEdge


class TargetUserRequest(BaseModel):
    user_id: str


class UpdateRequest(BaseModel):
    is_accept: bool


class EdgeResponse(BaseModel):
    id: str
    initiator: str
    target: str
    kind: EdgeKind
    created_at: datetime

    @classmethod
    def from_edge(cls, edge: RelationshipEdge) -> "EdgeResponse":
        return cls(**edge.model_dump())
