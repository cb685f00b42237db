# graph/schema.py
"""Wire format of ``GET /api/graph`` and its conversion to GraphSnapshot.

The backend serializes with omit-empty semantics: zero-valued numbers,
``false`` and empty arrays may be missing from the body, so those fields
default to their zero value here. Identity fields and the timestamp are
required.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from core.errors import ProtocolError
from graph.models import Edge, GraphSnapshot, HealthStatus, Node


class NodePayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    service_name: str
    health_status: HealthStatus = HealthStatus.HEALTHY
    amplification_score: float = Field(default=0.0, ge=0.0)
    downstream_failures: int = Field(default=0, ge=0)


class EdgePayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    source: str
    target: str
    causal_confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    is_active: bool = False


class SnapshotPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    timestamp: int
    nodes: list[NodePayload] | None = None
    edges: list[EdgePayload] | None = None


class RootCausePayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    candidates: list[NodePayload] | None = None


def _error_field(exc: ValidationError) -> str | None:
    errors = exc.errors()
    if not errors:
        return None
    parts = []
    for p in errors[0]["loc"]:
        if isinstance(p, int) and parts:
            parts[-1] = f"{parts[-1]}[{p}]"
        else:
            parts.append(str(p))
    return ".".join(parts)


def _validate(model: type[BaseModel], payload: Any) -> BaseModel:
    if not isinstance(payload, dict):
        raise ProtocolError(f"expected a JSON object, got {type(payload).__name__}")
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        field = _error_field(exc)
        raise ProtocolError(f"invalid {model.__name__} at {field}: {exc.errors()[0]['msg']}", field=field) from exc


def _to_node(p: NodePayload) -> Node:
    return Node(
        id=p.id,
        service_name=p.service_name,
        health_status=HealthStatus(p.health_status),
        amplification_score=p.amplification_score,
        downstream_failures=p.downstream_failures,
    )


def parse_snapshot(payload: Any) -> GraphSnapshot:
    """Проверяет тело ответа и строит GraphSnapshot.

    Raises:
        ProtocolError: schema violation, duplicate node id, or an edge
            whose endpoint is not among the snapshot's nodes.
    """
    data = _validate(SnapshotPayload, payload)

    nodes: list[Node] = []
    seen: set[str] = set()
    for i, np_ in enumerate(data.nodes or []):
        if np_.id in seen:
            raise ProtocolError(f"duplicate node id {np_.id!r}", field=f"nodes[{i}].id")
        seen.add(np_.id)
        nodes.append(_to_node(np_))

    edges: list[Edge] = []
    for i, ep in enumerate(data.edges or []):
        for attr in ("source", "target"):
            ref = getattr(ep, attr)
            if ref not in seen:
                raise ProtocolError(
                    f"edge {ep.source}->{ep.target} references unknown node {ref!r}",
                    field=f"edges[{i}].{attr}",
                )
        edges.append(Edge(
            source=ep.source,
            target=ep.target,
            causal_confidence=ep.causal_confidence,
            is_active=ep.is_active,
        ))

    return GraphSnapshot(timestamp=data.timestamp, nodes=nodes, edges=edges)


def parse_root_causes(payload: Any) -> list[Node]:
    """Разбирает ответ ``GET /api/root-cause``."""
    data = _validate(RootCausePayload, payload)
    return [_to_node(p) for p in data.candidates or []]


def node_to_dict(n: Node) -> dict:
    return {
        "id": n.id,
        "service_name": n.service_name,
        "health_status": int(n.health_status),
        "amplification_score": n.amplification_score,
        "downstream_failures": n.downstream_failures,
    }


def edge_to_dict(e: Edge) -> dict:
    return {
        "source": e.source,
        "target": e.target,
        "causal_confidence": e.causal_confidence,
        "is_active": e.is_active,
    }


def snapshot_to_dict(snap: GraphSnapshot) -> dict:
    """Обратное преобразование в формат бэкенда."""
    return {
        "timestamp": snap.timestamp,
        "nodes": [node_to_dict(n) for n in snap.nodes],
        "edges": [edge_to_dict(e) for e in snap.edges],
    }
