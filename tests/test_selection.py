# tests/test_selection.py
# Test selection/coordinator.py

from conftest import make_snapshot
from graph.models import Edge, Node
from selection.coordinator import EMPTY_SELECTION, SelectionCoordinator, SelectionState


class TestSelectionChange:
    def test_first_selected_node_wins(self):
        sel = SelectionCoordinator()
        state = sel.on_selection_change(nodes=["b", "a"])
        assert state.selected_node_id == "b"

    def test_first_selected_edge_wins(self):
        sel = SelectionCoordinator()
        state = sel.on_selection_change(edges=[("a", "b"), ("b", "c")])
        assert state.selected_edge_id == ("a", "b")

    def test_node_and_edge_are_independent(self):
        sel = SelectionCoordinator()
        state = sel.on_selection_change(nodes=["a"], edges=[("a", "b")])
        assert state == SelectionState("a", ("a", "b"))

    def test_empty_event_clears(self):
        sel = SelectionCoordinator()
        sel.select_node("a")
        assert sel.on_selection_change([], []) == EMPTY_SELECTION

    def test_accepts_model_objects_and_dicts(self):
        sel = SelectionCoordinator()
        state = sel.on_selection_change(
            nodes=[Node(id="x", service_name="x")],
            edges=[{"source": "x", "target": "y"}],
        )
        assert state == SelectionState("x", ("x", "y"))
        state = sel.on_selection_change(nodes=[{"id": "y"}], edges=[Edge(source="y", target="x")])
        assert state == SelectionState("y", ("y", "x"))

    def test_unknown_ids_skipped_once_snapshot_known(self):
        sel = SelectionCoordinator()
        sel.revalidate(make_snapshot(1))
        state = sel.on_selection_change(nodes=["ghost", "b"], edges=[("c", "a"), ("b", "c")])
        assert state == SelectionState("b", ("b", "c"))

    def test_select_node_drops_edge(self):
        sel = SelectionCoordinator()
        sel.select_edge("a", "b")
        assert sel.select_node("a") == SelectionState("a", None)

    def test_select_edge_drops_node(self):
        sel = SelectionCoordinator()
        sel.select_node("a")
        assert sel.select_edge("a", "b") == SelectionState(None, ("a", "b"))


class TestClearSelection:
    def test_clear_is_idempotent(self):
        changes = []
        sel = SelectionCoordinator(on_change=changes.append)
        sel.select_node("a")
        sel.clear_selection()
        sel.clear_selection()
        assert sel.state.is_empty
        assert changes == [SelectionState("a", None), EMPTY_SELECTION]


class TestRevalidate:
    def test_selection_survives_when_still_present(self):
        sel = SelectionCoordinator()
        sel.revalidate(make_snapshot(1))
        sel.on_selection_change(nodes=["b"], edges=[("a", "b")])
        state = sel.revalidate(make_snapshot(2))
        assert state == SelectionState("b", ("a", "b"))

    def test_removed_node_is_cleared(self):
        sel = SelectionCoordinator()
        sel.revalidate(make_snapshot(1))
        sel.select_node("c")
        state = sel.revalidate(make_snapshot(2, node_ids=("a", "b"), edges=(("a", "b"),)))
        assert state.selected_node_id is None

    def test_removed_edge_is_cleared_node_kept(self):
        sel = SelectionCoordinator()
        sel.revalidate(make_snapshot(1))
        sel.on_selection_change(nodes=["a"], edges=[("b", "c")])
        state = sel.revalidate(make_snapshot(2, edges=(("a", "b"),)))
        assert state == SelectionState("a", None)

    def test_on_change_only_on_actual_change(self):
        changes = []
        sel = SelectionCoordinator(on_change=changes.append)
        sel.revalidate(make_snapshot(1))
        sel.select_node("a")
        sel.select_node("a")
        sel.revalidate(make_snapshot(2))
        assert changes == [SelectionState("a", None)]
