# graph/models.py
# Модели: Node, Edge, GraphSnapshot и результат раскладки

from dataclasses import dataclass, field
from enum import IntEnum


class HealthStatus(IntEnum):
    """Состояние сервиса, как его кодирует бэкенд."""
    HEALTHY = 0
    DEGRADED = 1
    DOWN = 2


@dataclass(frozen=True)
class Node:
    """Узел графа — сервис."""
    id: str                              # стабилен между снапшотами
    service_name: str
    health_status: HealthStatus = HealthStatus.HEALTHY
    amplification_score: float = 0.0
    downstream_failures: int = 0


@dataclass(frozen=True)
class Edge:
    """Ребро графа — причинная зависимость source → target."""
    source: str
    target: str
    causal_confidence: float = 0.0       # [0, 1]
    is_active: bool = False

    def edge_key(self) -> tuple[str, str]:
        """Возвращает ключ ребра (source, target)."""
        return (self.source, self.target)

    @property
    def edge_id(self) -> str:
        """Строковый id, под которым ребро знает поверхность отрисовки."""
        return f"{self.source}_{self.target}"

    def is_self_loop(self) -> bool:
        return self.source == self.target


@dataclass(frozen=True)
class GraphSnapshot:
    """Полное состояние графа в момент timestamp (мс с эпохи).

    Снапшот никогда не патчится — только заменяется целиком.
    """
    timestamp: int
    nodes: tuple[Node, ...] = ()
    edges: tuple[Edge, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "nodes", tuple(self.nodes))
        object.__setattr__(self, "edges", tuple(self.edges))

    def node_ids(self) -> frozenset[str]:
        return frozenset(n.id for n in self.nodes)

    def edge_keys(self) -> frozenset[tuple[str, str]]:
        return frozenset(e.edge_key() for e in self.edges)

    def get_node(self, node_id: str) -> Node | None:
        return next((n for n in self.nodes if n.id == node_id), None)

    def get_edge(self, key: tuple[str, str]) -> Edge | None:
        return next((e for e in self.edges if e.edge_key() == key), None)


@dataclass(frozen=True)
class PositionedNode:
    """Узел с координатами левого верхнего угла своего прямоугольника."""
    node: Node
    x: float
    y: float
    width: float
    height: float
    rank: int
    order: int
    component: int

    @property
    def id(self) -> str:
        return self.node.id

    def overlaps(self, other: "PositionedNode") -> bool:
        return (
            self.x < other.x + other.width and other.x < self.x + self.width
            and self.y < other.y + other.height and other.y < self.y + self.height
        )


@dataclass(frozen=True)
class PositionedEdge:
    """Ребро с ломаной линией от правого края source к левому краю target."""
    edge: Edge
    points: tuple[tuple[float, float], ...]
    is_self_loop: bool = False
    is_back_edge: bool = False           # ребро, разорванное при удалении циклов

    @property
    def source(self) -> str:
        return self.edge.source

    @property
    def target(self) -> str:
        return self.edge.target


@dataclass(frozen=True)
class GraphLayout:
    """Результат раскладки. Только для чтения поверхностью отрисовки."""
    nodes: tuple[PositionedNode, ...] = ()
    edges: tuple[PositionedEdge, ...] = ()
    width: float = 0.0
    height: float = 0.0
    _by_id: dict = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self):
        self._by_id.update({pn.id: pn for pn in self.nodes})

    def node(self, node_id: str) -> PositionedNode | None:
        return self._by_id.get(node_id)


if __name__ == "__main__":
    n = Node(id="payments-db", service_name="payments-db", health_status=HealthStatus.DEGRADED)
    e = Edge(source="payment-svc", target="payments-db", causal_confidence=0.82, is_active=True)
    s = GraphSnapshot(timestamp=1_770_000_000_000, nodes=[n], edges=[e])
    print(f"Node: {n}")
    print(f"Edge: {e}, key={e.edge_key()}, id={e.edge_id}")
    print(f"Snapshot: ts={s.timestamp} nodes={len(s.nodes)} edges={len(s.edges)}")
