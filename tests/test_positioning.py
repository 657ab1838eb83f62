"""Tests for hierarchical and grid coordinate assignment."""

import pytest

from diagram_core.positioning import grid_positions, hierarchical_positions, normalize

DEFAULT = (120, 50)


def sizes_for(*node_ids, size=DEFAULT):
    return {nid: size for nid in node_ids}


class TestHierarchicalPositions:

    def test_top_to_bottom(self):
        groups = {0: ["R"], 1: ["A", "B"]}
        positions = hierarchical_positions(groups, sizes_for("R", "A", "B"), "TB")
        assert positions["A"] == (50, 200)
        assert positions["B"] == (250, 200)
        # Root centered above its rank
        assert positions["R"] == (150, 50)

    def test_left_to_right(self):
        groups = {0: ["R"], 1: ["A"]}
        positions = hierarchical_positions(groups, sizes_for("R", "A"), "LR")
        assert positions["R"] == (50, 50)
        assert positions["A"] == (50 + 120 + 100, 50)

    def test_bottom_to_top_reverses_ranks(self):
        groups = {0: ["R"], 1: ["A"]}
        positions = hierarchical_positions(groups, sizes_for("R", "A"), "BT")
        assert positions["R"][1] > positions["A"][1]
        assert positions["A"][1] == 50

    def test_right_to_left_reverses_ranks(self):
        groups = {0: ["R"], 1: ["A"]}
        positions = hierarchical_positions(groups, sizes_for("R", "A"), "RL")
        assert positions["R"][0] > positions["A"][0]

    def test_real_sizes_never_overlap(self):
        sizes = {"R": (120, 50), "A": (300, 40), "B": (60, 120), "C": (200, 80)}
        groups = {0: ["R"], 1: ["A", "B", "C"]}
        positions = hierarchical_positions(groups, sizes, "TB", node_spacing=10)
        a_right = positions["A"][0] + 300
        b_right = positions["B"][0] + 60
        assert positions["B"][0] - a_right == pytest.approx(10)
        assert positions["C"][0] - b_right == pytest.approx(10)

    def test_rank_advance_uses_tallest_node(self):
        sizes = {"R": (120, 50), "A": (120, 200), "B": (120, 50), "C": (120, 50)}
        groups = {0: ["R"], 1: ["A", "B"], 2: ["C"]}
        positions = hierarchical_positions(groups, sizes, "TB", rank_spacing=100)
        assert positions["C"][1] == pytest.approx(50 + 50 + 100 + 200 + 100)

    def test_minimum_coordinate_equals_padding(self):
        groups = {0: ["R"], 1: ["A", "B", "C"]}
        positions = hierarchical_positions(groups, sizes_for("R", "A", "B", "C"), "LR", padding=25)
        assert min(x for x, _ in positions.values()) == pytest.approx(25)
        assert min(y for _, y in positions.values()) == pytest.approx(25)

    def test_empty(self):
        assert hierarchical_positions({}, {}) == {}


class TestGridPositions:

    def test_columns_are_ceil_sqrt(self):
        ids = ["a", "b", "c", "d", "e"]
        positions = grid_positions(ids, sizes_for(*ids))
        assert positions["a"] == (50, 50)
        assert positions["b"] == (250, 50)
        assert positions["c"] == (450, 50)
        assert positions["d"] == (50, 200)
        assert positions["e"] == (250, 200)

    def test_single_node(self):
        assert grid_positions(["a"], sizes_for("a")) == {"a": (50, 50)}

    def test_empty(self):
        assert grid_positions([], {}) == {}


class TestNormalize:

    def test_shifts_to_padding(self):
        centers = {"a": (-100, -100), "b": (100, 0)}
        positions = normalize(centers, sizes_for("a", "b"), 10)
        assert positions["a"] == (10, 10)
        assert positions["b"] == (210, 110)
