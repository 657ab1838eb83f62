"""
Hierarchy derivation - ranks and parent/child adjacency from edge direction.

The hierarchy is a derived view rebuilt on demand; nothing here is stored on
the diagram. Degenerate input (no roots, cycles, dangling edges, isolated
nodes) falls back to a safe default instead of raising.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Iterable, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import Node, Edge

logger = logging.getLogger(__name__)


@dataclass
class HierarchyEntry:
    """Rank and adjacency for a single node."""
    rank: int = -1
    parent_ids: list[str] = field(default_factory=list)
    child_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "rank": self.rank,
            "parent_ids": list(self.parent_ids),
            "child_ids": list(self.child_ids),
        }


def build_adjacency(
    node_ids: Iterable[str],
    edges: Iterable["Edge"]
) -> dict[str, HierarchyEntry]:
    """
    Build parent/child lists from edges, in node order.

    Edges whose source or target is not a known node are skipped; duplicate
    edges contribute a single adjacency entry.
    """
    entries: dict[str, HierarchyEntry] = {nid: HierarchyEntry() for nid in node_ids}

    for edge in edges:
        source = entries.get(edge.source)
        target = entries.get(edge.target)
        if source is None or target is None:
            continue
        if edge.target not in source.child_ids:
            source.child_ids.append(edge.target)
        if edge.source not in target.parent_ids:
            target.parent_ids.append(edge.source)

    return entries


def find_roots(hierarchy: dict[str, HierarchyEntry]) -> list[str]:
    """Nodes with no incoming edges, or the first node if every node has one."""
    roots = [nid for nid, entry in hierarchy.items() if not entry.parent_ids]
    if not roots and hierarchy:
        roots = [next(iter(hierarchy))]
    return roots


def assign_ranks(hierarchy: dict[str, HierarchyEntry], roots: list[str]) -> int:
    """
    Assign ranks breadth-first from all roots at once.

    The first visit fixes a node's rank; a later visit at a greater depth
    raises it but never re-queues the node, so cycles terminate. Nodes the
    traversal never reaches get rank 0.

    Returns:
        The highest rank assigned
    """
    visited: set[str] = set()
    queue: deque[tuple[str, int]] = deque((root, 0) for root in roots)
    max_rank = 0

    while queue:
        node_id, rank = queue.popleft()
        entry = hierarchy.get(node_id)
        if entry is None:
            continue

        if node_id in visited:
            if rank > entry.rank:
                entry.rank = rank
                max_rank = max(max_rank, rank)
            continue

        visited.add(node_id)
        entry.rank = rank
        max_rank = max(max_rank, rank)

        for child_id in entry.child_ids:
            queue.append((child_id, rank + 1))

    for node_id, entry in hierarchy.items():
        if node_id not in visited:
            entry.rank = 0

    return max_rank


def build_hierarchy(
    nodes: list["Node"],
    edges: list["Edge"],
    root_ids: list[str] | None = None
) -> dict[str, HierarchyEntry]:
    """
    Derive rank, parent ids and child ids for every node.

    Args:
        nodes: Nodes to rank (all of the diagram, or a subtree)
        edges: Edges defining the hierarchy; edges leaving the node set are ignored
        root_ids: Explicit traversal roots; defaults to nodes with no incoming edges

    Returns:
        Mapping of node id to HierarchyEntry
    """
    hierarchy = build_adjacency((n.id for n in nodes), edges)
    if not hierarchy:
        return hierarchy

    if root_ids:
        roots = [rid for rid in root_ids if rid in hierarchy]
    else:
        roots = find_roots(hierarchy)
    if not roots:
        roots = find_roots(hierarchy)

    max_rank = assign_ranks(hierarchy, roots)
    logger.debug("Ranked %d nodes from %d roots (max rank %d)", len(hierarchy), len(roots), max_rank)
    return hierarchy


def group_by_rank(hierarchy: dict[str, HierarchyEntry]) -> dict[int, list[str]]:
    """Group node ids by rank, ranks ascending, nodes in hierarchy order."""
    groups: dict[int, list[str]] = {}
    for node_id, entry in hierarchy.items():
        groups.setdefault(entry.rank, []).append(node_id)
    return dict(sorted(groups.items()))


def compute_levels(nodes: list["Node"], edges: list["Edge"]) -> dict[str, int]:
    """
    Compute the `level` of every node: 0 for roots, otherwise one more than
    the shallowest parent reachable from a root. Unreachable nodes get 0.
    """
    hierarchy = build_adjacency((n.id for n in nodes), edges)
    levels: dict[str, int] = {}
    queue: deque[str] = deque()

    for root in find_roots(hierarchy):
        levels[root] = 0
        queue.append(root)

    while queue:
        node_id = queue.popleft()
        for child_id in hierarchy[node_id].child_ids:
            if child_id not in levels:
                levels[child_id] = levels[node_id] + 1
                queue.append(child_id)

    for node_id in hierarchy:
        levels.setdefault(node_id, 0)

    return levels


def collect_subtree(start_id: str, edges: list["Edge"], node_ids: set[str]) -> list[str]:
    """
    The start node followed by every node reachable from it, breadth-first.

    Edges pointing outside `node_ids` are skipped.
    """
    if start_id not in node_ids:
        return []

    children: dict[str, list[str]] = {}
    for edge in edges:
        if edge.source in node_ids and edge.target in node_ids:
            children.setdefault(edge.source, []).append(edge.target)

    seen = {start_id}
    ordered = [start_id]
    queue: deque[str] = deque([start_id])
    while queue:
        current = queue.popleft()
        for child_id in children.get(current, []):
            if child_id not in seen:
                seen.add(child_id)
                ordered.append(child_id)
                queue.append(child_id)
    return ordered
