# viewer/inspector.py
# Модели представления для панели деталей, бейджей и индикатора статуса

from graph.classify import classify_node
from graph.models import Edge, GraphLayout, GraphSnapshot, HealthStatus, Node
from graph.schema import edge_to_dict, node_to_dict
from selection.coordinator import SelectionState
from timeline.controller import Mode
from viewer.session import ConnectionState, ConnectionStatus

HEALTH_LABELS = {
    HealthStatus.HEALTHY: "Healthy / Operational",
    HealthStatus.DEGRADED: "Degraded Performance",
    HealthStatus.DOWN: "Critical Outage",
}

STATUS_LABELS = {
    ConnectionState.CONNECTING: "Connecting",
    ConnectionState.ONLINE: "System Online",
    ConnectionState.OFFLINE: "Offline",
}


def node_badges(node: Node) -> dict:
    """Бейджи узла: усиление (если > 0) и число downstream-отказов (если > 0)."""
    badges = {}
    if node.amplification_score > 0:
        badges["amplification"] = f"{node.amplification_score:.1f}x"
    if node.downstream_failures > 0:
        badges["downstream_failures"] = f"{node.downstream_failures} Fails"
    return badges


def node_detail(node: Node, snapshot: GraphSnapshot | None = None) -> dict:
    detail = {
        "id": node.id,
        "service_name": node.service_name,
        "kind": classify_node(node.service_name).value,
        "health": node.health_status.name,
        "health_label": HEALTH_LABELS[node.health_status],
        "amplification": f"{node.amplification_score:.2f}x",
        "downstream_failures": node.downstream_failures,
    }
    if snapshot is not None:
        detail["incoming_edges"] = sum(1 for e in snapshot.edges if e.target == node.id)
        detail["outgoing_edges"] = sum(1 for e in snapshot.edges if e.source == node.id)
    return detail


def edge_detail(edge: Edge) -> dict:
    return {
        "id": edge.edge_id,
        "source": edge.source,
        "target": edge.target,
        "causal_confidence": edge.causal_confidence,
        "confidence_label": f"{edge.causal_confidence:.0%}",
        "is_active": edge.is_active,
    }


def selection_detail(selection: SelectionState, snapshot: GraphSnapshot | None) -> dict:
    """Детали выделения; None там, где ничего не выделено."""
    node = edge = None
    if snapshot is not None:
        if selection.selected_node_id is not None:
            n = snapshot.get_node(selection.selected_node_id)
            node = node_detail(n, snapshot) if n else None
        if selection.selected_edge_id is not None:
            e = snapshot.get_edge(selection.selected_edge_id)
            edge = edge_detail(e) if e else None
    return {
        "selected_node_id": selection.selected_node_id,
        "selected_edge_id": list(selection.selected_edge_id) if selection.selected_edge_id else None,
        "node": node,
        "edge": edge,
    }


def mode_banner(mode: Mode) -> str:
    return "LIVE" if mode is Mode.LIVE else "HISTORICAL"


def status_indicator(status: ConnectionStatus) -> dict:
    return {
        "state": status.state.value,
        "label": STATUS_LABELS[status.state],
        "ok": status.state is not ConnectionState.OFFLINE,
        "last_error": status.last_error,
        "error_kind": status.error_kind,
        "last_success_at": status.last_success_at,
        "consecutive_failures": status.consecutive_failures,
    }


def layout_to_dict(graph: GraphLayout) -> dict:
    """Разложенный граф в JSON-виде для поверхности отрисовки."""
    return {
        "width": graph.width,
        "height": graph.height,
        "nodes": [
            {
                **node_to_dict(pn.node),
                "kind": classify_node(pn.node.service_name).value,
                "badges": node_badges(pn.node),
                "position": {"x": pn.x, "y": pn.y},
                "size": {"width": pn.width, "height": pn.height},
                "rank": pn.rank,
                "order": pn.order,
                "component": pn.component,
            }
            for pn in graph.nodes
        ],
        "edges": [
            {
                **edge_to_dict(pe.edge),
                "id": pe.edge.edge_id,
                "animated": pe.edge.is_active,
                "points": [list(p) for p in pe.points],
                "is_self_loop": pe.is_self_loop,
                "is_back_edge": pe.is_back_edge,
            }
            for pe in graph.edges
        ],
    }
