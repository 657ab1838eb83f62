"""Tests for layout dispatch, fallbacks and editing helpers."""

import logging

import pytest
from pydantic import ValidationError

from diagram_core.layout import (
    ANIMATION_DURATION_MS, align_nodes, distribute_nodes, layout, resolve_strategy,
)
from diagram_core.models import LayoutConfig, LayoutType, Node
from diagram_core.theme import ThemeCycle, get_color_scheme

from conftest import build_diagram, overlapping_pairs


def positions_of(diagram):
    return {n.id: (n.x, n.y) for n in diagram.nodes}


def org_chart():
    return build_diagram([
        ("ceo", "cto"), ("ceo", "cfo"), ("ceo", "coo"),
        ("cto", "dev1"), ("cto", "dev2"), ("coo", "ops"), ("cfo", "ops"),
    ])


class TestResolveStrategy:

    def test_supported_pair(self):
        strategy = resolve_strategy(LayoutConfig(type="tree", direction="LR"))
        assert strategy.kind == LayoutType.TREE
        assert strategy.direction == "LR"

    def test_unknown_type_falls_back_to_hierarchical(self, caplog):
        with caplog.at_level(logging.WARNING):
            strategy = resolve_strategy(LayoutConfig(type="force"))
        assert strategy.kind == LayoutType.HIERARCHICAL
        assert "force" in caplog.text

    def test_direction_alias_across_families(self):
        assert resolve_strategy(LayoutConfig(type="mindmap", direction="TB")).direction == "bottom"
        assert resolve_strategy(LayoutConfig(type="hierarchical", direction="right")).direction == "LR"
        assert resolve_strategy(LayoutConfig(type="timeline", direction="TB")).direction == "vertical"

    def test_unknown_direction_uses_family_default(self, caplog):
        with caplog.at_level(logging.WARNING):
            strategy = resolve_strategy(LayoutConfig(type="timeline", direction="diagonal"))
        assert strategy.direction == "horizontal"
        assert "diagonal" in caplog.text

    def test_fishbone_only_grows_right(self):
        assert resolve_strategy(LayoutConfig(type="fishbone", direction="LR")).direction == "right"


class TestLayoutConfig:

    def test_defaults(self):
        config = LayoutConfig()
        assert (config.type, config.direction) == ("hierarchical", "TB")
        assert (config.node_spacing, config.rank_spacing, config.padding) == (80, 100, 50)
        assert config.animate is True

    def test_camel_case_keys(self):
        config = LayoutConfig(**{"nodeSpacing": 20, "rankSpacing": 40, "sortOrder": "clockwise"})
        assert config.node_spacing == 20
        assert config.rank_spacing == 40
        assert config.sort_order == "clockwise"

    def test_negative_spacing_rejected(self):
        with pytest.raises(ValidationError):
            LayoutConfig(node_spacing=-1)

    def test_is_immutable(self):
        config = LayoutConfig()
        with pytest.raises(ValidationError):
            config.node_spacing = 10


class TestLayout:

    def test_empty_diagram_is_noop(self):
        result = layout(build_diagram([]))
        assert result.positions == {}

    def test_hierarchical_ranks_top_to_bottom(self):
        diagram = org_chart()
        layout(diagram)
        ceo, cto, dev1 = (diagram.get_node(i) for i in ("ceo", "cto", "dev1"))
        assert ceo.y < cto.y < dev1.y
        assert overlapping_pairs(diagram.nodes) == []

    def test_every_type_produces_non_overlapping_nodes(self):
        for layout_type, direction in [
            ("hierarchical", "LR"), ("tree", "BT"), ("grid", "TB"),
            ("mindmap", "right"), ("mindmap", "both"), ("mindmap", "radial"),
        ]:
            diagram = org_chart()
            layout(diagram, LayoutConfig(type=layout_type, direction=direction))
            assert overlapping_pairs(diagram.nodes) == [], (layout_type, direction)

    def test_deterministic(self):
        first, second = org_chart(), org_chart()
        layout(first)
        layout(second)
        assert positions_of(first) == positions_of(second)

    @pytest.mark.parametrize("layout_type,direction", [
        ("hierarchical", "TB"), ("mindmap", "right"), ("mindmap", "radial"),
        ("fishbone", "right"), ("timeline", "horizontal"),
    ])
    def test_repeated_layout_is_stable(self, layout_type, direction):
        diagram = org_chart()
        config = LayoutConfig(type=layout_type, direction=direction)
        layout(diagram, config)
        once = positions_of(diagram)
        layout(diagram, config)
        assert positions_of(diagram) == once

    def test_animation_does_not_change_positions(self):
        animated, still = org_chart(), org_chart()
        result = layout(animated, LayoutConfig(animate=True))
        quiet = layout(still, LayoutConfig(animate=False))
        assert positions_of(animated) == positions_of(still)
        assert result.duration_ms == ANIMATION_DURATION_MS
        assert quiet.duration_ms == 0

    def test_result_records_transitions(self):
        diagram = org_chart()
        result = layout(diagram)
        assert result.previous["ceo"] == (0, 0)
        assert any(move["node_id"] == "ceo" for move in result.transitions())
        payload = result.to_dict()
        assert payload["type"] == "hierarchical"
        assert set(payload["positions"]) == {n.id for n in diagram.nodes}

    def test_writes_sibling_order(self):
        diagram = org_chart()
        layout(diagram)
        orders = sorted(diagram.get_node(i).data.order for i in ("cto", "cfo", "coo"))
        assert orders == [0, 1, 2]

    def test_never_touches_visibility(self):
        diagram = org_chart()
        diagram.get_node("cto").data.collapsed = True
        diagram.get_node("dev1").data.visible = False
        layout(diagram, LayoutConfig(type="mindmap", direction="right"))
        assert diagram.get_node("cto").data.collapsed is True
        assert diagram.get_node("dev1").data.visible is False

    def test_start_node_keeps_position(self):
        diagram = org_chart()
        layout(diagram)
        cto = diagram.get_node("cto")
        anchor = (cto.x, cto.y)
        cfo_before = (diagram.get_node("cfo").x, diagram.get_node("cfo").y)

        result = layout(diagram, LayoutConfig(direction="LR"), start_node_id="cto")

        assert (cto.x, cto.y) == anchor
        assert set(result.positions) == {"cto", "dev1", "dev2"}
        assert (diagram.get_node("cfo").x, diagram.get_node("cfo").y) == cfo_before

    def test_unknown_start_node_lays_out_everything(self, caplog):
        diagram = org_chart()
        with caplog.at_level(logging.WARNING):
            result = layout(diagram, start_node_id="nobody")
        assert set(result.positions) == {n.id for n in diagram.nodes}
        assert "nobody" in caplog.text

    def test_unsupported_type_still_lays_out(self):
        diagram = org_chart()
        result = layout(diagram, LayoutConfig(type="force"))
        assert result.strategy.kind == LayoutType.HIERARCHICAL
        assert len(result.positions) == len(diagram.nodes)


class TestTheme:

    def test_uncoloured_nodes_take_cycle_colours(self):
        diagram = build_diagram([("A", "B"), ("B", "C"), ("C", "D")])
        diagram.get_node("B").color = "#123456"
        layout(diagram, theme=ThemeCycle("corporate"))

        scheme = get_color_scheme("corporate")
        assert diagram.get_node("A").color == scheme.primary.fill
        assert diagram.get_node("B").color == "#123456"
        assert diagram.get_node("C").color == scheme.secondary.fill
        assert diagram.get_node("D").color == scheme.accent.fill

    def test_cycle_rotates_and_resets(self):
        cycle = ThemeCycle()
        fills = [cycle.next_colors().fill for _ in range(4)]
        assert fills[0] == fills[3]
        cycle.reset("executive")
        assert cycle.next_colors().fill == get_color_scheme("executive").primary.fill

    def test_unknown_scheme_falls_back(self):
        assert get_color_scheme("neon").id == "default"

    def test_no_theme_leaves_colours_unset(self):
        diagram = build_diagram([("A", "B")])
        layout(diagram)
        assert diagram.get_node("A").color is None


def row(*boxes):
    return [Node(id=nid, x=x, y=y, width=w, height=h) for nid, x, y, w, h in boxes]


class TestAlignDistribute:

    def test_align_left(self):
        nodes = row(("a", 10, 0, 100, 50), ("b", 40, 80, 60, 50))
        assert align_nodes(nodes, ["a", "b"], "left")
        assert [n.x for n in nodes] == [10, 10]

    def test_align_middle(self):
        nodes = row(("a", 0, 0, 100, 40), ("b", 200, 100, 100, 80))
        assert align_nodes(nodes, ["a", "b"], "middle")
        assert nodes[0].center()[1] == nodes[1].center()[1]

    def test_align_needs_two_nodes(self):
        nodes = row(("a", 0, 0, 100, 40))
        assert not align_nodes(nodes, ["a"], "left")

    def test_unknown_alignment(self):
        nodes = row(("a", 0, 0, 100, 40), ("b", 10, 0, 100, 40))
        assert not align_nodes(nodes, ["a", "b"], "diagonal")

    def test_distribute_equal_gaps(self):
        nodes = row(("a", 0, 0, 100, 40), ("b", 120, 0, 50, 40), ("c", 400, 0, 100, 40))
        assert distribute_nodes(nodes, ["a", "b", "c"], "horizontal")
        a, b, c = nodes
        assert b.x - (a.x + a.width) == pytest.approx(c.x - (b.x + b.width))
        assert (a.x, c.x) == (0, 400)

    def test_distribute_needs_three_nodes(self):
        nodes = row(("a", 0, 0, 100, 40), ("b", 200, 0, 100, 40))
        assert not distribute_nodes(nodes, ["a", "b"], "vertical")
