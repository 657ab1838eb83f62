"""
Collapse/expand state for diagram branches.

Each node is either expanded or collapsed (`data.collapsed`). Collapsing a
node hides its whole subtree; expanding it shows its direct children and
keeps descending only into children that are not collapsed themselves, so a
descendant's collapsed flag survives any toggling of its ancestors.

Edge visibility always equals the visibility of the edge's target node.
Nothing here touches positions or sibling order.
"""

import logging
from typing import Iterable, Optional, Union, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Diagram, Node, Edge

logger = logging.getLogger(__name__)

DEFAULT_AUTO_COLLAPSE_DEPTH = 4

NodeRef = Union["Node", str]


def _resolve(diagram: "Diagram", node: NodeRef) -> Optional["Node"]:
    node_id = node if isinstance(node, str) else node.id
    return diagram.get_node(node_id)


def _outgoing(diagram: "Diagram") -> dict[str, list["Edge"]]:
    outgoing: dict[str, list["Edge"]] = {}
    for edge in diagram.edges:
        outgoing.setdefault(edge.source, []).append(edge)
    return outgoing


def has_children(diagram: "Diagram", node: NodeRef) -> bool:
    """Check if a node has at least one outgoing edge to an existing node."""
    node_id = node if isinstance(node, str) else node.id
    node_map = diagram.node_map()
    return any(e.source == node_id and e.target in node_map for e in diagram.edges)


def get_all_descendants(diagram: "Diagram", node: NodeRef) -> list["Node"]:
    """
    Get every node reachable from `node` via outgoing edges, depth-first.

    The node itself is never included, even when a cycle leads back to it.
    Edges to missing nodes are skipped.
    """
    node_id = node if isinstance(node, str) else node.id
    node_map = diagram.node_map()
    outgoing = _outgoing(diagram)

    descendants: list["Node"] = []
    visited = {node_id}
    stack = [e.target for e in reversed(outgoing.get(node_id, []))]

    while stack:
        current = stack.pop()
        if current in visited or current not in node_map:
            continue
        visited.add(current)
        descendants.append(node_map[current])
        stack.extend(e.target for e in reversed(outgoing.get(current, [])))

    return descendants


def sync_edge_visibility(diagram: "Diagram", node_ids: Optional[Iterable[str]] = None) -> int:
    """
    Set `edge.visible` to its target's visibility.

    Args:
        diagram: Diagram to repair
        node_ids: Only edges into these nodes; all edges when omitted

    Returns:
        Number of edges whose visibility changed
    """
    node_map = diagram.node_map()
    scope = set(node_ids) if node_ids is not None else None
    changed = 0
    for edge in diagram.edges:
        if scope is not None and edge.target not in scope:
            continue
        target = node_map.get(edge.target)
        if target is None:
            continue
        if edge.visible != target.data.visible:
            edge.visible = target.data.visible
            changed += 1
    return changed


def _hide_descendants(diagram: "Diagram", node: "Node") -> list[str]:
    hidden = []
    for descendant in get_all_descendants(diagram, node):
        descendant.data.visible = False
        hidden.append(descendant.id)
    return hidden


def _show_descendants(diagram: "Diagram", node: "Node") -> list[str]:
    """Show children, descending only through children that are expanded."""
    node_map = diagram.node_map()
    outgoing = _outgoing(diagram)

    shown = []
    visited = {node.id}
    stack = [node.id]
    while stack:
        current = stack.pop()
        for edge in outgoing.get(current, []):
            target = node_map.get(edge.target)
            if target is None or target.id in visited:
                continue
            visited.add(target.id)
            target.data.visible = True
            shown.append(target.id)
            if not target.data.collapsed:
                stack.append(target.id)
    return shown


def toggle_collapse(diagram: "Diagram", node: NodeRef, collapse: bool) -> None:
    """
    Collapse or expand a node's branch.

    Collapsing hides every descendant and every edge into a hidden node; the
    node itself stays visible. Expanding shows the direct children and the
    edges to them, then continues only into children that are not collapsed.
    Expanding a node that is itself hidden only records the flag; its branch
    appears when the hidden ancestor is expanded.

    Repeating the current state is a no-op. Unknown nodes and edges to
    missing nodes are skipped.
    """
    target = _resolve(diagram, node)
    if target is None:
        logger.debug("toggle_collapse: node %s not found", node if isinstance(node, str) else node.id)
        return
    if target.data.collapsed == collapse:
        return

    target.data.collapsed = collapse

    if collapse:
        changed = _hide_descendants(diagram, target)
    elif target.data.visible:
        changed = _show_descendants(diagram, target)
    else:
        changed = []

    sync_edge_visibility(diagram, changed)
    logger.debug("%s %s: %d nodes affected", "Collapsed" if collapse else "Expanded", target.id, len(changed))


def apply_auto_collapse(
    diagram: "Diagram",
    threshold: int = DEFAULT_AUTO_COLLAPSE_DEPTH,
    node_ids: Optional[Iterable[str]] = None
) -> list[str]:
    """
    Collapse generated nodes deeper than `threshold`.

    Only nodes tagged as generated from an external hierarchy are affected;
    manually authored nodes are left alone at any depth. When `node_ids` is
    given, nodes outside it keep their current state.

    Returns:
        IDs of the nodes that were collapsed
    """
    scope = set(node_ids) if node_ids is not None else None
    collapsed = []
    for node in list(diagram.nodes):
        if scope is not None and node.id not in scope:
            continue
        if node.data.is_generated and node.data.level > threshold and not node.data.collapsed:
            toggle_collapse(diagram, node, True)
            collapsed.append(node.id)
    if collapsed:
        logger.debug("Auto-collapsed %d generated nodes beyond level %d", len(collapsed), threshold)
    return collapsed
