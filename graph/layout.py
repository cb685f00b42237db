# graph/layout.py
"""Hierarchical left-to-right layout of a snapshot's service graph.

Pipeline, run from scratch on every call:

1. split the graph into weakly connected components;
2. per component, drop back-edges found by DFS so the rest is acyclic;
3. rank nodes by longest path from the sources;
4. reorder each rank with median sweeps to reduce crossings;
5. place ranks along x and rank order along y, stacking components
   vertically.

The result depends only on the node/edge lists and their order. Adding or
removing one node may reflow the whole diagram.
"""

import logging
from collections.abc import Sequence

import networkx as nx

from core.config import LayoutSettings, settings
from core.errors import LayoutError
from graph.models import Edge, GraphLayout, Node, PositionedEdge, PositionedNode

logger = logging.getLogger(__name__)

SELF_LOOP_SIZE = 24.0


def _components(g: nx.DiGraph, index: dict[str, int]) -> list[list[str]]:
    comps = [sorted(c, key=index.__getitem__) for c in nx.weakly_connected_components(g)]
    comps.sort(key=lambda c: index[c[0]])
    return comps


def _back_edges(g: nx.DiGraph, members: list[str]) -> set[tuple[str, str]]:
    """Рёбра, ведущие в узел на текущем стеке DFS.

    DFS стартует сначала из истоков, затем из оставшихся узлов — всё в
    порядке входного списка.
    """
    roots = [n for n in members if g.in_degree(n) == 0] + members
    state: dict[str, int] = {}          # 1 — на стеке, 2 — обработан
    back: set[tuple[str, str]] = set()

    for root in roots:
        if root in state:
            continue
        state[root] = 1
        stack = [(root, iter(list(g.successors(root))))]
        while stack:
            node, children = stack[-1]
            child = next(children, None)
            if child is None:
                state[node] = 2
                stack.pop()
            elif child not in state:
                state[child] = 1
                stack.append((child, iter(list(g.successors(child)))))
            elif state[child] == 1:
                back.add((node, child))
    return back


def _ranks(dag: nx.DiGraph, index: dict[str, int]) -> dict[str, int]:
    rank: dict[str, int] = {}
    for n in nx.lexicographical_topological_sort(dag, key=index.__getitem__):
        preds = [rank[p] for p in dag.predecessors(n)]
        rank[n] = max(preds) + 1 if preds else 0
    return rank


def _crossings(layers: list[list[str]], dag: nx.DiGraph, rank: dict[str, int]) -> int:
    pos = {n: i for layer in layers for i, n in enumerate(layer)}
    total = 0
    for r in range(len(layers) - 1):
        pairs = [
            (pos[u], pos[v])
            for u in layers[r]
            for v in dag.successors(u)
            if rank[v] == r + 1
        ]
        for i, (a1, b1) in enumerate(pairs):
            for a2, b2 in pairs[i + 1:]:
                if (a1 - a2) * (b1 - b2) < 0:
                    total += 1
    return total


def _median(values: list[int]) -> float:
    s = sorted(values)
    mid = len(s) // 2
    if len(s) % 2:
        return float(s[mid])
    return (s[mid - 1] + s[mid]) / 2.0


def _sweep(layers: list[list[str]], neighbours, order: range) -> None:
    for r in order:
        pos = {n: i for layer in layers for i, n in enumerate(layer)}
        keyed = []
        for i, n in enumerate(layers[r]):
            adj = [pos[m] for m in neighbours(n)]
            keyed.append((_median(adj) if adj else float(i), i, n))
        keyed.sort()
        layers[r] = [n for _, _, n in keyed]


def _order(dag: nx.DiGraph, rank: dict[str, int], members: list[str], sweeps: int) -> list[list[str]]:
    """Медианная эвристика: проходы вниз/вверх, лучший по числу пересечений."""
    layers: list[list[str]] = [[] for _ in range(max(rank.values()) + 1)]
    for n in members:
        layers[rank[n]].append(n)

    best = [list(layer) for layer in layers]
    best_crossings = _crossings(best, dag, rank)
    for i in range(sweeps):
        if best_crossings == 0:
            break
        if i % 2 == 0:
            _sweep(layers, dag.predecessors, range(1, len(layers)))
        else:
            _sweep(layers, dag.successors, range(len(layers) - 2, -1, -1))
        c = _crossings(layers, dag, rank)
        if c < best_crossings:
            best, best_crossings = [list(layer) for layer in layers], c
    return best


def _edge_points(src: PositionedNode, dst: PositionedNode) -> tuple[tuple[float, float], ...]:
    x1, y1 = src.x + src.width, src.y + src.height / 2
    x2, y2 = dst.x, dst.y + dst.height / 2
    if y1 == y2:
        return ((x1, y1), (x2, y2))
    mx = (x1 + x2) / 2
    return ((x1, y1), (mx, y1), (mx, y2), (x2, y2))


def _loop_points(pn: PositionedNode) -> tuple[tuple[float, float], ...]:
    right, cy = pn.x + pn.width, pn.y + pn.height / 2
    top = pn.y - SELF_LOOP_SIZE
    return (
        (right, cy),
        (right + SELF_LOOP_SIZE, cy),
        (right + SELF_LOOP_SIZE, top),
        (pn.x + pn.width / 2, top),
        (pn.x + pn.width / 2, pn.y),
    )


def layout(
    nodes: Sequence[Node],
    edges: Sequence[Edge],
    cfg: LayoutSettings | None = None,
) -> GraphLayout:
    """Раскладывает граф слева направо по рангам.

    Returns:
        GraphLayout with one PositionedNode per node (input order) and one
        PositionedEdge per edge (input order, duplicates included).

    Raises:
        LayoutError: an edge references a node not in ``nodes`` or the
            graph could not be made acyclic.
    """
    cfg = cfg or settings.layout
    if not nodes:
        return GraphLayout()

    index = {n.id: i for i, n in enumerate(nodes)}
    g = nx.DiGraph()
    g.add_nodes_from(index)
    for e in edges:
        if e.source not in index or e.target not in index:
            raise LayoutError(f"edge {e.source}->{e.target} references an unknown node")
        if not e.is_self_loop():
            g.add_edge(e.source, e.target)

    col = cfg.node_width + cfg.rank_gap
    row = cfg.node_height + cfg.node_gap
    placed: dict[str, PositionedNode] = {}
    back_edges: set[tuple[str, str]] = set()
    y_offset = 0.0

    for comp_no, members in enumerate(_components(g, index)):
        sub = g.subgraph(members)
        back = _back_edges(sub, members)
        back_edges |= back
        dag = nx.DiGraph(sub)
        dag.remove_edges_from(back)
        if not nx.is_directed_acyclic_graph(dag):
            raise LayoutError(f"component {comp_no} still has a cycle after back-edge removal")

        rank = _ranks(dag, index)
        layers = _order(dag, rank, members, cfg.crossing_sweeps)
        tallest = max(len(layer) for layer in layers)
        for r, layer in enumerate(layers):
            # короткие ранги центрируются по высоте компоненты
            shift = (tallest - len(layer)) * row / 2
            for i, node_id in enumerate(layer):
                placed[node_id] = PositionedNode(
                    node=nodes[index[node_id]],
                    x=r * col,
                    y=y_offset + shift + i * row,
                    width=cfg.node_width,
                    height=cfg.node_height,
                    rank=r,
                    order=i,
                    component=comp_no,
                )
        y_offset += tallest * row - cfg.node_gap + cfg.component_gap

    positioned_edges = []
    for e in edges:
        src, dst = placed[e.source], placed[e.target]
        if e.is_self_loop():
            positioned_edges.append(PositionedEdge(edge=e, points=_loop_points(src), is_self_loop=True))
        else:
            positioned_edges.append(PositionedEdge(
                edge=e,
                points=_edge_points(src, dst),
                is_back_edge=e.edge_key() in back_edges,
            ))

    out_nodes = tuple(placed[n.id] for n in nodes)
    width = max(pn.x + pn.width for pn in out_nodes)
    height = max(pn.y + pn.height for pn in out_nodes)
    logger.debug("layout: %d nodes, %d edges, %d back-edges", len(out_nodes), len(positioned_edges), len(back_edges))
    return GraphLayout(nodes=out_nodes, edges=tuple(positioned_edges), width=width, height=height)
