"""
Layout dispatch for diagram nodes.

Provides the layout families the editor supports:
- Hierarchical / Tree: ranked layout with barycenter crossing reduction
- Grid: row-major arrangement in ceil(sqrt(n)) columns
- Mindmap: directional, two-sided or radial branch placement
- Fishbone: spine-and-rib cause/effect placement
- Timeline: chronological placement along one axis

The (type, direction) pair of a LayoutConfig is resolved once into a
LayoutStrategy; unsupported combinations fall back to the closest default.
All layout functions modify nodes in-place. Layout never touches collapse
or visibility state.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, TYPE_CHECKING

from .hierarchy import build_adjacency, build_hierarchy, collect_subtree, find_roots, group_by_rank
from .models import LayoutConfig, LayoutType
from .ordering import apply_order, order_ranks
from .positioning import grid_positions, hierarchical_positions, Point
from .templates import (
    build_mindmap_tree, fishbone_positions, mindmap_positions,
    sibling_orders, timeline_positions,
)

if TYPE_CHECKING:
    from .models import Diagram, Node
    from .theme import ThemeCycle

logger = logging.getLogger(__name__)


ANIMATION_DURATION_MS = 300

HIERARCHICAL_DIRECTIONS = ("TB", "BT", "LR", "RL")
MINDMAP_DIRECTIONS = ("right", "left", "top", "bottom", "both", "radial")
TIMELINE_DIRECTIONS = ("horizontal", "vertical")

SUPPORTED_DIRECTIONS: dict[LayoutType, tuple[str, ...]] = {
    LayoutType.HIERARCHICAL: HIERARCHICAL_DIRECTIONS,
    LayoutType.TREE: HIERARCHICAL_DIRECTIONS,
    LayoutType.GRID: HIERARCHICAL_DIRECTIONS,
    LayoutType.MINDMAP: MINDMAP_DIRECTIONS,
    LayoutType.FISHBONE: ("right",),
    LayoutType.TIMELINE: TIMELINE_DIRECTIONS,
}

# Nearest equivalent of a direction written for another family
DIRECTION_ALIASES: dict[LayoutType, dict[str, str]] = {
    LayoutType.HIERARCHICAL: {"right": "LR", "left": "RL", "top": "BT", "bottom": "TB",
                              "horizontal": "LR", "vertical": "TB"},
    LayoutType.MINDMAP: {"LR": "right", "RL": "left", "BT": "top", "TB": "bottom",
                         "horizontal": "right", "vertical": "bottom"},
    LayoutType.TIMELINE: {"LR": "horizontal", "RL": "horizontal", "right": "horizontal",
                          "left": "horizontal", "TB": "vertical", "BT": "vertical",
                          "top": "vertical", "bottom": "vertical"},
}
DIRECTION_ALIASES[LayoutType.TREE] = DIRECTION_ALIASES[LayoutType.HIERARCHICAL]
DIRECTION_ALIASES[LayoutType.GRID] = DIRECTION_ALIASES[LayoutType.HIERARCHICAL]


@dataclass(frozen=True)
class LayoutStrategy:
    """Resolved layout family plus the direction it understands."""
    kind: LayoutType
    direction: str


@dataclass
class LayoutResult:
    """
    Outcome of a layout pass.

    Positions are already committed to the nodes; `previous` and the
    animation fields let a view layer tween from old to new coordinates.
    """
    strategy: Optional[LayoutStrategy] = None
    positions: dict[str, Point] = field(default_factory=dict)
    previous: dict[str, Point] = field(default_factory=dict)
    animate: bool = False
    duration_ms: int = 0

    def transitions(self) -> list[dict]:
        """Nodes whose position changed, with their start and end points."""
        moves = []
        for node_id, (x, y) in self.positions.items():
            old = self.previous.get(node_id)
            if old is not None and old != (x, y):
                moves.append({"node_id": node_id, "from": list(old), "to": [x, y]})
        return moves

    def to_dict(self) -> dict:
        return {
            "type": self.strategy.kind.value if self.strategy else None,
            "direction": self.strategy.direction if self.strategy else None,
            "positions": {nid: list(pos) for nid, pos in self.positions.items()},
            "animate": self.animate,
            "duration_ms": self.duration_ms,
            "transitions": self.transitions(),
        }


def resolve_strategy(config: LayoutConfig) -> LayoutStrategy:
    """
    Resolve a (type, direction) pair into a supported strategy.

    Unknown types fall back to hierarchical; directions from another family
    are mapped to their nearest equivalent; anything else takes the family
    default (first supported direction).
    """
    try:
        kind = LayoutType(config.type)
    except ValueError:
        logger.warning("Unsupported layout type %r, falling back to hierarchical", config.type)
        kind = LayoutType.HIERARCHICAL

    supported = SUPPORTED_DIRECTIONS[kind]
    direction = config.direction
    if direction not in supported:
        alias = DIRECTION_ALIASES.get(kind, {}).get(direction)
        if alias in supported:
            direction = alias
        else:
            logger.warning("Unsupported direction %r for %s layout, using %r",
                           config.direction, kind.value, supported[0])
            direction = supported[0]

    return LayoutStrategy(kind=kind, direction=direction)


def _ranked_positions(
    diagram: "Diagram",
    node_ids: list[str],
    strategy: LayoutStrategy,
    config: LayoutConfig,
    start_node_id: Optional[str]
) -> dict[str, Point]:
    node_map = diagram.node_map()
    nodes = [node_map[nid] for nid in node_ids]
    sizes = {n.id: (n.width, n.height) for n in nodes}

    if strategy.kind == LayoutType.GRID:
        return grid_positions(node_ids, sizes, config.node_spacing, config.rank_spacing, config.padding)

    hierarchy = build_hierarchy(nodes, diagram.edges, root_ids=[start_node_id] if start_node_id else None)
    groups = group_by_rank(hierarchy)
    orders = order_ranks(groups, hierarchy)
    for node_id, order in orders.items():
        node_map[node_id].data.order = order

    return hierarchical_positions(
        apply_order(groups, orders),
        sizes,
        direction=strategy.direction,
        node_spacing=config.node_spacing,
        rank_spacing=config.rank_spacing,
        padding=config.padding,
    )


def _mindmap_layout(
    diagram: "Diagram",
    strategy: LayoutStrategy,
    config: LayoutConfig,
    start_node_id: Optional[str]
) -> dict[str, Point]:
    if start_node_id:
        roots = [start_node_id]
    else:
        roots = find_roots(build_adjacency((n.id for n in diagram.nodes), diagram.edges))

    node_map = diagram.node_map()
    positions: dict[str, Point] = {}
    for root_id in roots:
        tree = build_mindmap_tree(diagram, root_id, config.sort_order)
        positions.update(mindmap_positions(diagram, root_id, strategy.direction, config, tree=tree))
        for node_id, order in sibling_orders(tree).items():
            node_map[node_id].data.order = order
    return positions


def _apply_theme(nodes: list["Node"], theme: "ThemeCycle"):
    """Give every uncoloured node the next colour of the cycle, in diagram order."""
    for node in nodes:
        if node.color is None:
            node.color = theme.next_colors().fill


def layout(
    diagram: "Diagram",
    config: Optional[LayoutConfig] = None,
    start_node_id: Optional[str] = None,
    theme: Optional["ThemeCycle"] = None
) -> LayoutResult:
    """
    Compute and commit node positions for a diagram.

    Args:
        diagram: Diagram whose nodes are positioned (modified in-place)
        config: Layout request; defaults to a top-to-bottom hierarchical layout
        start_node_id: Restrict the pass to this node's subtree. Hierarchical and
            grid results are shifted so this node keeps its position; mind maps
            use it as the single root; fishbone uses it as the head.
        theme: Colour cycle for nodes that have no colour yet

    Returns:
        LayoutResult with committed and previous positions
    """
    config = config or LayoutConfig()
    strategy = resolve_strategy(config)
    result = LayoutResult(
        strategy=strategy,
        animate=config.animate,
        duration_ms=ANIMATION_DURATION_MS if config.animate else 0,
    )

    if not diagram.nodes:
        return result

    node_map = diagram.node_map()
    if start_node_id is not None and start_node_id not in node_map:
        logger.warning("Layout start node %s not found, laying out the whole diagram", start_node_id)
        start_node_id = None

    if strategy.kind in (LayoutType.HIERARCHICAL, LayoutType.TREE, LayoutType.GRID):
        if start_node_id:
            node_ids = collect_subtree(start_node_id, diagram.edges, set(node_map))
        else:
            node_ids = [n.id for n in diagram.nodes]
        positions = _ranked_positions(diagram, node_ids, strategy, config, start_node_id)

        if start_node_id:
            anchor = node_map[start_node_id]
            dx = anchor.x - positions[start_node_id][0]
            dy = anchor.y - positions[start_node_id][1]
            positions = {nid: (x + dx, y + dy) for nid, (x, y) in positions.items()}

    elif strategy.kind == LayoutType.MINDMAP:
        positions = _mindmap_layout(diagram, strategy, config, start_node_id)
    elif strategy.kind == LayoutType.FISHBONE:
        positions = fishbone_positions(diagram, start_node_id, config)
    else:
        positions = timeline_positions(diagram, strategy.direction, config)

    for node_id, (x, y) in positions.items():
        node = node_map[node_id]
        result.previous[node_id] = (node.x, node.y)
        node.x = x
        node.y = y
    result.positions = positions

    if theme is not None:
        _apply_theme(diagram.nodes, theme)

    logger.debug("Laid out %d nodes with %s/%s", len(positions), strategy.kind.value, strategy.direction)
    return result


def align_nodes(
    nodes: list["Node"],
    node_ids: list[str],
    alignment: str = "left"
) -> bool:
    """
    Align selected nodes along an edge or center line.

    Args:
        nodes: All nodes in the diagram
        node_ids: IDs of nodes to align
        alignment: One of "left", "center", "right", "top", "middle", "bottom"

    Returns:
        True if alignment was performed, False if insufficient nodes or unknown alignment
    """
    targets = [n for n in nodes if n.id in node_ids]
    if len(targets) < 2:
        return False

    if alignment == "left":
        edge = min(n.x for n in targets)
        for n in targets:
            n.x = edge
    elif alignment == "center":
        center = sum(n.x + n.width / 2 for n in targets) / len(targets)
        for n in targets:
            n.x = center - n.width / 2
    elif alignment == "right":
        edge = max(n.x + n.width for n in targets)
        for n in targets:
            n.x = edge - n.width
    elif alignment == "top":
        edge = min(n.y for n in targets)
        for n in targets:
            n.y = edge
    elif alignment == "middle":
        middle = sum(n.y + n.height / 2 for n in targets) / len(targets)
        for n in targets:
            n.y = middle - n.height / 2
    elif alignment == "bottom":
        edge = max(n.y + n.height for n in targets)
        for n in targets:
            n.y = edge - n.height
    else:
        return False

    return True


def distribute_nodes(
    nodes: list["Node"],
    node_ids: list[str],
    axis: str = "horizontal"
) -> bool:
    """
    Spread nodes so the gaps between their bounding boxes are equal.

    The first and last node along the axis stay in place.

    Returns:
        True if distribution was performed, False if fewer than 3 nodes or unknown axis
    """
    targets = [n for n in nodes if n.id in node_ids]
    if len(targets) < 3:
        return False

    if axis == "horizontal":
        targets.sort(key=lambda n: n.x)
        start = targets[0].x
        end = targets[-1].x + targets[-1].width
        spacing = (end - start - sum(n.width for n in targets)) / (len(targets) - 1)
        current = start
        for n in targets:
            n.x = current
            current += n.width + spacing
    elif axis == "vertical":
        targets.sort(key=lambda n: n.y)
        start = targets[0].y
        end = targets[-1].y + targets[-1].height
        spacing = (end - start - sum(n.height for n in targets)) / (len(targets) - 1)
        current = start
        for n in targets:
            n.y = current
            current += n.height + spacing
    else:
        return False

    return True
