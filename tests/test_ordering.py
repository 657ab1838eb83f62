"""Tests for barycenter crossing reduction."""

from diagram_core.hierarchy import build_hierarchy, group_by_rank
from diagram_core.ordering import apply_order, count_crossings, order_ranks

from conftest import build_diagram


def crossed_diagram():
    # A->C and B->D, with rank 1 listed as [D, C]: one crossing
    return build_diagram([("A", "C"), ("B", "D")], nodes=["A", "B", "D", "C"])


class TestOrderRanks:

    def test_removes_simple_crossing(self):
        diagram = crossed_diagram()
        hierarchy = build_hierarchy(diagram.nodes, diagram.edges)
        groups = group_by_rank(hierarchy)
        assert count_crossings(groups, hierarchy) == 1

        orders = order_ranks(groups, hierarchy)
        assert count_crossings(apply_order(groups, orders), hierarchy) == 0
        assert orders["C"] < orders["D"]

    def test_input_groups_are_not_mutated(self):
        diagram = crossed_diagram()
        hierarchy = build_hierarchy(diagram.nodes, diagram.edges)
        groups = group_by_rank(hierarchy)
        snapshot = {rank: list(ids) for rank, ids in groups.items()}
        order_ranks(groups, hierarchy)
        assert groups == snapshot

    def test_deterministic(self):
        diagram = build_diagram([
            ("R", "A"), ("R", "B"), ("R", "C"),
            ("A", "X"), ("C", "X"), ("B", "Y"), ("A", "Z"),
        ])
        hierarchy = build_hierarchy(diagram.nodes, diagram.edges)
        groups = group_by_rank(hierarchy)
        assert order_ranks(groups, hierarchy) == order_ranks(groups, hierarchy)

    def test_ties_keep_previous_order(self):
        diagram = build_diagram([], nodes=["A", "B", "C"])
        hierarchy = build_hierarchy(diagram.nodes, diagram.edges)
        orders = order_ranks(group_by_rank(hierarchy), hierarchy)
        assert orders == {"A": 0, "B": 1, "C": 2}

    def test_zero_iterations_keeps_input_order(self):
        diagram = crossed_diagram()
        hierarchy = build_hierarchy(diagram.nodes, diagram.edges)
        orders = order_ranks(group_by_rank(hierarchy), hierarchy, iterations=0)
        assert orders == {"A": 0, "B": 1, "D": 0, "C": 1}

    def test_every_node_gets_an_order(self):
        diagram = build_diagram([("R", "A"), ("R", "B"), ("B", "C")])
        hierarchy = build_hierarchy(diagram.nodes, diagram.edges)
        orders = order_ranks(group_by_rank(hierarchy), hierarchy)
        assert set(orders) == {"R", "A", "B", "C"}

    def test_empty(self):
        assert order_ranks({}, {}) == {}
