"""
Geometric templates for mind maps, fishbone diagrams and timelines.

Each template reads the diagram and returns top-left positions for the nodes
it places; nothing is written back here. Siblings of one rank never overlap
along the cross axis: subtree spans are accumulated from real node sizes,
radial rings grow until neighbouring nodes clear each other, and fishbone
and timeline slots advance by each node's extent.
"""

import logging
import math
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, TYPE_CHECKING

from .positioning import normalize, Point, Size

if TYPE_CHECKING:
    from .models import Diagram, LayoutConfig, Node

logger = logging.getLogger(__name__)


# Gap presets per layout mode: (level gap, sibling gap, radius gap)
MINDMAP_GAPS = {
    "standard": (140, 50, 220),
    "compact": (100, 30, 160),
}

MINDMAP_DIRECTIONS = {
    "right": "LR",
    "left": "RL",
    "top": "BT",
    "bottom": "TB",
}

TIMELINE_BASE_GAP = 200
TIMELINE_OFFSET = 100
FISHBONE_SUB_INDENT = 20


def _sizes(nodes: list["Node"]) -> dict[str, Size]:
    return {n.id: (n.width, n.height) for n in nodes}


def _to_padding(positions: dict[str, Point], sizes: dict[str, Size], padding: float) -> dict[str, Point]:
    """Shift top-left positions so the bounding box starts at `padding`."""
    centers = {
        nid: (x + sizes[nid][0] / 2, y + sizes[nid][1] / 2)
        for nid, (x, y) in positions.items()
    }
    return normalize(centers, sizes, padding)


# ─── Mind map ─────────────────────────────────────────────────────────────────


@dataclass
class MindmapTree:
    """A spanning tree of the diagram rooted at one node, in breadth-first order."""
    root: str
    order: list[str] = field(default_factory=list)
    children: dict[str, list[str]] = field(default_factory=dict)
    depth: dict[str, int] = field(default_factory=dict)


def _child_sort_key(node: "Node", sort_order: str) -> tuple:
    """mm_order first, then the last written sibling order, then position."""
    mm_order = node.data.mm_order
    if sort_order == "left-to-right":
        position = (node.x, node.y)
    else:
        position = (node.y, node.x)
    return (mm_order is None, mm_order if mm_order is not None else 0, node.data.order, position)


def build_mindmap_tree(diagram: "Diagram", root_id: str, sort_order: str = "top-to-bottom") -> MindmapTree:
    """
    Build a spanning tree from `root_id` following outgoing edges.

    A node reachable along several paths belongs to the first parent that
    reaches it; back-edges are ignored.
    """
    node_map = diagram.node_map()
    outgoing: dict[str, list[str]] = {}
    for edge in diagram.edges:
        if edge.source in node_map and edge.target in node_map:
            outgoing.setdefault(edge.source, []).append(edge.target)

    tree = MindmapTree(root=root_id, order=[root_id], depth={root_id: 0})
    seen = {root_id}
    queue: deque[str] = deque([root_id])

    while queue:
        current = queue.popleft()
        kids = []
        for child_id in outgoing.get(current, []):
            if child_id not in seen:
                seen.add(child_id)
                kids.append(node_map[child_id])
        kids.sort(key=lambda n: _child_sort_key(n, sort_order))
        tree.children[current] = [n.id for n in kids]
        for child in kids:
            tree.depth[child.id] = tree.depth[current] + 1
            tree.order.append(child.id)
            queue.append(child.id)

    return tree


def _subtree_spans(tree: MindmapTree, sizes: dict[str, Size], vertical: bool, sibling_gap: float) -> dict[str, float]:
    """Cross-axis extent of every subtree, computed leaves first."""
    spans: dict[str, float] = {}
    for nid in reversed(tree.order):
        own = sizes[nid][0] if vertical else sizes[nid][1]
        kids = tree.children.get(nid, [])
        if kids:
            children_span = sum(spans[k] for k in kids) + (len(kids) - 1) * sibling_gap
            spans[nid] = max(own, children_span)
        else:
            spans[nid] = own
    return spans


def _place_tree(
    tree: MindmapTree,
    sizes: dict[str, Size],
    direction: str,
    anchor: Point,
    level_gap: float,
    sibling_gap: float,
    root_children: Optional[list[str]] = None
) -> dict[str, Point]:
    """
    Position a tree top-down, each child centered inside its subtree span.

    `root_children` restricts which of the root's children are placed
    (used by the two-sided layout).
    """
    vertical = direction in ("TB", "BT")
    spans = _subtree_spans(tree, sizes, vertical, sibling_gap)
    positions: dict[str, Point] = {tree.root: anchor}

    for nid in tree.order:
        if nid not in positions:
            continue
        kids = tree.children.get(nid, [])
        if nid == tree.root and root_children is not None:
            kids = [k for k in kids if k in root_children]
        if not kids:
            continue

        x, y = positions[nid]
        width, height = sizes[nid]
        total = sum(spans[k] for k in kids) + (len(kids) - 1) * sibling_gap

        if vertical:
            cursor = x + width / 2 - total / 2
            for kid in kids:
                kid_w, kid_h = sizes[kid]
                kid_x = cursor + spans[kid] / 2 - kid_w / 2
                kid_y = y + height + level_gap if direction == "TB" else y - level_gap - kid_h
                positions[kid] = (kid_x, kid_y)
                cursor += spans[kid] + sibling_gap
        else:
            cursor = y + height / 2 - total / 2
            for kid in kids:
                kid_w, kid_h = sizes[kid]
                kid_y = cursor + spans[kid] / 2 - kid_h / 2
                kid_x = x + width + level_gap if direction == "LR" else x - level_gap - kid_w
                positions[kid] = (kid_x, kid_y)
                cursor += spans[kid] + sibling_gap

    return positions


def _radial_positions(
    tree: MindmapTree,
    sizes: dict[str, Size],
    anchor: Point,
    radius_gap: float,
    sibling_gap: float,
    clockwise: bool
) -> dict[str, Point]:
    """
    Allocate angular spans proportional to leaf counts, starting at 12 o'clock,
    then place each depth on a ring large enough that neighbours cannot overlap.
    """
    leaves: dict[str, int] = {}
    for nid in reversed(tree.order):
        kids = tree.children.get(nid, [])
        leaves[nid] = sum(leaves[k] for k in kids) if kids else 1

    start = -math.pi / 2
    sweep = 2 * math.pi if clockwise else -2 * math.pi
    ranges: dict[str, tuple[float, float]] = {tree.root: (start, start + sweep)}
    angles: dict[str, float] = {}

    for nid in tree.order:
        begin, end = ranges[nid]
        angles[nid] = (begin + end) / 2
        kids = tree.children.get(nid, [])
        total = sum(leaves[k] for k in kids)
        current = begin
        for kid in kids:
            span = (end - begin) * leaves[kid] / total if total else 0
            ranges[kid] = (current, current + span)
            current += span

    by_depth: dict[int, list[str]] = {}
    for nid in tree.order:
        by_depth.setdefault(tree.depth[nid], []).append(nid)

    radii: dict[int, float] = {0: 0.0}
    for depth in sorted(by_depth):
        if depth == 0:
            continue
        ring = by_depth[depth]
        radius = radii[depth - 1] + radius_gap
        if len(ring) > 1:
            normalized = sorted(angles[nid] % (2 * math.pi) for nid in ring)
            gaps = [b - a for a, b in zip(normalized, normalized[1:])]
            gaps.append(2 * math.pi - normalized[-1] + normalized[0])
            min_gap = min(gaps)
            diagonal = max(math.hypot(*sizes[nid]) for nid in ring)
            if min_gap > 0:
                radius = max(radius, (diagonal + sibling_gap) / (2 * math.sin(min_gap / 2)))
        radii[depth] = radius

    root_w, root_h = sizes[tree.root]
    cx = anchor[0] + root_w / 2
    cy = anchor[1] + root_h / 2
    positions: dict[str, Point] = {tree.root: anchor}
    for nid in tree.order[1:]:
        radius = radii[tree.depth[nid]]
        width, height = sizes[nid]
        px = cx + math.cos(angles[nid]) * radius
        py = cy + math.sin(angles[nid]) * radius
        positions[nid] = (px - width / 2, py - height / 2)
    return positions


def mindmap_positions(
    diagram: "Diagram",
    root_id: str,
    direction: str,
    config: "LayoutConfig",
    tree: Optional[MindmapTree] = None
) -> dict[str, Point]:
    """
    Lay out the mind map rooted at `root_id`; the root keeps its position.

    Args:
        diagram: Diagram to read
        root_id: Root of the branch to lay out
        direction: "right", "left", "top", "bottom", "both" or "radial"
        config: Layout request (mode and sort_order are used)
        tree: Prebuilt spanning tree for `root_id`, built here when omitted

    Returns:
        Top-left (x, y) for the root and every node of its subtree
    """
    root = diagram.get_node(root_id)
    if root is None:
        return {}

    level_gap, sibling_gap, radius_gap = MINDMAP_GAPS.get(config.mode, MINDMAP_GAPS["standard"])
    if tree is None:
        tree = build_mindmap_tree(diagram, root_id, config.sort_order)
    sizes = _sizes(diagram.nodes)
    anchor = (root.x, root.y)

    if direction == "radial":
        clockwise = config.sort_order != "counter-clockwise"
        return _radial_positions(tree, sizes, anchor, radius_gap, sibling_gap, clockwise)

    if direction == "both":
        root_kids = tree.children.get(root_id, [])
        right = root_kids[0::2]
        left = root_kids[1::2]
        positions = _place_tree(tree, sizes, "LR", anchor, level_gap, sibling_gap, root_children=right)
        positions.update(_place_tree(tree, sizes, "RL", anchor, level_gap, sibling_gap, root_children=left))
        return positions

    layout_dir = MINDMAP_DIRECTIONS.get(direction, "LR")
    return _place_tree(tree, sizes, layout_dir, anchor, level_gap, sibling_gap)


def sibling_orders(tree: MindmapTree) -> dict[str, int]:
    """Index of every node among its siblings."""
    orders = {tree.root: 0}
    for kids in tree.children.values():
        for index, kid in enumerate(kids):
            orders[kid] = index
    return orders


# ─── Fishbone ─────────────────────────────────────────────────────────────────


def find_fishbone_head(diagram: "Diagram") -> Optional[str]:
    """The fish head: first node without outgoing edges, else the first node."""
    if not diagram.nodes:
        return None
    sources = {e.source for e in diagram.edges}
    for node in diagram.nodes:
        if node.id not in sources:
            return node.id
    return diagram.nodes[0].id


def fishbone_positions(diagram: "Diagram", head_id: Optional[str], config: "LayoutConfig") -> dict[str, Point]:
    """
    Spine-and-rib placement.

    Causes (nodes with an edge into the head) alternate above and below the
    spine, each in its own column, left to right; sub-causes (anything with
    a path into a cause) stack away from the spine inside that column. The
    head sits right of every column, centered on the spine.
    """
    node_map = diagram.node_map()
    if head_id not in node_map:
        head_id = find_fishbone_head(diagram)
    if head_id is None:
        return {}

    incoming: dict[str, list[str]] = {}
    for edge in diagram.edges:
        if edge.source in node_map and edge.target in node_map:
            sources = incoming.setdefault(edge.target, [])
            if edge.source not in sources:
                sources.append(edge.source)

    causes = [c for c in incoming.get(head_id, []) if c != head_id]
    causes.sort(key=lambda c: (node_map[c].data.mm_order is None, node_map[c].data.mm_order or 0))

    placed = {head_id, *causes}
    sub_causes: dict[str, list[str]] = {}
    for cause in causes:
        collected: list[str] = []
        stack = list(reversed(incoming.get(cause, [])))
        while stack:
            current = stack.pop()
            if current in placed:
                continue
            placed.add(current)
            collected.append(current)
            stack.extend(reversed(incoming.get(current, [])))
        sub_causes[cause] = collected

    sizes = _sizes(diagram.nodes)
    rib = config.rank_spacing / 2
    sub_gap = config.node_spacing / 4
    positions: dict[str, Point] = {}
    right_edge = 0.0
    cursors = {"top": 0.0, "bottom": config.node_spacing / 2}

    for index, cause in enumerate(causes):
        side = "top" if index % 2 == 0 else "bottom"
        subs = sub_causes[cause]
        cause_w, cause_h = sizes[cause]
        indent = FISHBONE_SUB_INDENT if subs else 0
        column_width = max([indent + cause_w] + [sizes[s][0] for s in subs])
        left = cursors[side]

        cause_x = left + indent
        if side == "top":
            cause_y = -rib - cause_h
            edge_y = cause_y
            for sub in subs:
                edge_y -= sub_gap + sizes[sub][1]
                positions[sub] = (left, edge_y)
        else:
            cause_y = rib
            edge_y = cause_y + cause_h
            for sub in subs:
                positions[sub] = (left, edge_y + sub_gap)
                edge_y += sub_gap + sizes[sub][1]
        positions[cause] = (cause_x, cause_y)

        cursors[side] = left + column_width + config.node_spacing
        right_edge = max(right_edge, left + column_width)

    head_w, head_h = sizes[head_id]
    head_x = right_edge + config.rank_spacing if causes else 0.0
    positions[head_id] = (head_x, -head_h / 2)

    return _to_padding(positions, sizes, config.padding)


# ─── Timeline ─────────────────────────────────────────────────────────────────


def parse_date(value: Optional[str]) -> Optional[float]:
    """ISO date string to a UTC timestamp; None when missing or unparseable."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


def timeline_sequence(nodes: list["Node"], orientation: str, sort_by_date: bool = True) -> list["Node"]:
    """Dated nodes in date order, then undated nodes in position order."""
    def key(node: "Node") -> tuple:
        position = node.x if orientation == "horizontal" else node.y
        stamp = parse_date(node.data.date) if sort_by_date else None
        if stamp is None:
            return (1, 0.0, position)
        return (0, stamp, position)

    return sorted(nodes, key=key)


def timeline_gap(previous: "Node", current: "Node", auto_spacing: bool) -> float:
    """Gap before `current`: 200, scaled by elapsed days/30 in [0.75, 2] when both are dated."""
    if not auto_spacing:
        return TIMELINE_BASE_GAP
    prev_stamp = parse_date(previous.data.date)
    stamp = parse_date(current.data.date)
    if prev_stamp is None or stamp is None:
        return TIMELINE_BASE_GAP
    days = (stamp - prev_stamp) / 86400
    return TIMELINE_BASE_GAP * min(max(days / 30, 0.75), 2)


def timeline_positions(diagram: "Diagram", orientation: str, config: "LayoutConfig") -> dict[str, Point]:
    """
    Single-axis chronological placement, alternating sides of the axis.

    Events advance along the axis by their own extent plus the gap, so no
    two events overlap along it.
    """
    sequence = timeline_sequence(diagram.nodes, orientation, config.sort_by_date)
    if not sequence:
        return {}

    sizes = _sizes(diagram.nodes)
    positions: dict[str, Point] = {}
    cursor = 0.0

    for index, node in enumerate(sequence):
        if index > 0:
            cursor += timeline_gap(sequence[index - 1], node, config.auto_spacing)
        side = -TIMELINE_OFFSET if index % 2 == 0 else TIMELINE_OFFSET
        if orientation == "horizontal":
            positions[node.id] = (cursor, side)
            cursor += node.width
        else:
            positions[node.id] = (side, cursor)
            cursor += node.height

    logger.debug("Timeline placed %d events (%s)", len(sequence), orientation)
    return _to_padding(positions, sizes, config.padding)
