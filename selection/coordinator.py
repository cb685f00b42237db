# selection/coordinator.py
"""Single-node / single-edge selection that survives snapshot replacement."""

import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Callable

from graph.models import Edge, GraphSnapshot, Node

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectionState:
    selected_node_id: str | None = None
    selected_edge_id: tuple[str, str] | None = None

    @property
    def is_empty(self) -> bool:
        return self.selected_node_id is None and self.selected_edge_id is None


EMPTY_SELECTION = SelectionState()


def _node_id(item: Any) -> str:
    if isinstance(item, str):
        return item
    if isinstance(item, Node):
        return item.id
    if isinstance(item, dict):
        return str(item["id"])
    return str(getattr(item, "id"))


def _edge_key(item: Any) -> tuple[str, str]:
    if isinstance(item, Edge):
        return item.edge_key()
    if isinstance(item, (tuple, list)) and len(item) == 2:
        return (str(item[0]), str(item[1]))
    if isinstance(item, dict):
        return (str(item["source"]), str(item["target"]))
    return (str(getattr(item, "source")), str(getattr(item, "target")))


class SelectionCoordinator:
    """Хранит SelectionState и сверяет его с каждым новым снапшотом.

    События от поверхности отрисовки — level-triggered: каждый вызов
    on_selection_change несёт полный текущий набор выделенных элементов.
    """

    def __init__(self, on_change: Callable[[SelectionState], None] | None = None):
        self.on_change = on_change
        self._lock = threading.Lock()
        self._state = EMPTY_SELECTION
        self._node_ids: frozenset[str] | None = None
        self._edge_keys: frozenset[tuple[str, str]] | None = None

    @property
    def state(self) -> SelectionState:
        return self._state

    def on_selection_change(self, nodes: Iterable[Any] = (), edges: Iterable[Any] = ()) -> SelectionState:
        """Побеждают первый выделенный узел и первое выделенное ребро.

        Элементы, которых нет в текущем снапшоте, пропускаются. Узел и ребро
        выделяются независимо; что показывать, решает потребитель.
        """
        with self._lock:
            node_id = next(
                (n for n in map(_node_id, nodes) if self._node_ids is None or n in self._node_ids),
                None,
            )
            edge_key = next(
                (k for k in map(_edge_key, edges) if self._edge_keys is None or k in self._edge_keys),
                None,
            )
            changed = self._replace(SelectionState(node_id, edge_key))
        return self._notify(changed)

    def select_node(self, node_id: str) -> SelectionState:
        """Выделить один узел (снимает выделение ребра)."""
        return self.on_selection_change(nodes=[node_id])

    def select_edge(self, source: str, target: str) -> SelectionState:
        """Выделить одно ребро (снимает выделение узла)."""
        return self.on_selection_change(edges=[(source, target)])

    def clear_selection(self) -> SelectionState:
        """Снять выделение. Идемпотентно."""
        with self._lock:
            changed = self._replace(EMPTY_SELECTION)
        return self._notify(changed)

    def revalidate(self, snapshot: GraphSnapshot) -> SelectionState:
        """Вызывается на каждый применённый снапшот.

        Выделение, которого нет в новом снапшоте, сбрасывается в None.
        """
        with self._lock:
            self._node_ids = snapshot.node_ids()
            self._edge_keys = snapshot.edge_keys()
            node_id, edge_key = self._state.selected_node_id, self._state.selected_edge_id
            if node_id is not None and node_id not in self._node_ids:
                logger.info("selected node %s is gone at %d, clearing", node_id, snapshot.timestamp)
                node_id = None
            if edge_key is not None and edge_key not in self._edge_keys:
                logger.info("selected edge %s->%s is gone at %d, clearing", *edge_key, snapshot.timestamp)
                edge_key = None
            changed = self._replace(SelectionState(node_id, edge_key))
        return self._notify(changed)

    def _replace(self, new: SelectionState) -> bool:
        if new == self._state:
            return False
        self._state = new
        return True

    def _notify(self, changed: bool) -> SelectionState:
        state = self._state
        if changed and self.on_change is not None:
            self.on_change(state)
        return state
