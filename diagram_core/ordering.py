"""
Rank ordering - crossing reduction between adjacent ranks.

Uses the barycenter heuristic: each pass re-sorts a rank by the mean index of
its neighbours in the adjacent rank. Sorting is stable, so ties keep their
previous order and equal inputs always produce equal orders.
"""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .hierarchy import HierarchyEntry

logger = logging.getLogger(__name__)

DEFAULT_ITERATIONS = 10


def _barycenter_sort(
    current: list[str],
    neighbour_rank: list[str],
    neighbours_of: dict[str, list[str]]
) -> list[str]:
    """Sort `current` by the mean index of each node's neighbours in `neighbour_rank`."""
    position = {nid: i for i, nid in enumerate(neighbour_rank)}

    def barycenter(item: tuple[int, str]) -> float:
        index, node_id = item
        indices = [position[n] for n in neighbours_of.get(node_id, []) if n in position]
        if not indices:
            return float(index)
        return sum(indices) / len(indices)

    return [nid for _, nid in sorted(enumerate(current), key=barycenter)]


def order_ranks(
    rank_groups: dict[int, list[str]],
    hierarchy: dict[str, "HierarchyEntry"],
    iterations: int = DEFAULT_ITERATIONS
) -> dict[str, int]:
    """
    Compute the order of every node within its rank.

    Args:
        rank_groups: Node ids grouped by rank (not modified)
        hierarchy: Adjacency from build_hierarchy
        iterations: Number of forward+backward sweeps

    Returns:
        Mapping of node id to its index within its rank
    """
    ranks = sorted(rank_groups)
    groups = {rank: list(rank_groups[rank]) for rank in ranks}
    parents = {nid: entry.parent_ids for nid, entry in hierarchy.items()}
    children = {nid: entry.child_ids for nid, entry in hierarchy.items()}

    for _ in range(iterations):
        # Forward pass: order each rank by its parents in the previous rank
        for r in range(1, len(ranks)):
            groups[ranks[r]] = _barycenter_sort(groups[ranks[r]], groups[ranks[r - 1]], parents)

        # Backward pass: order each rank by its children in the next rank
        for r in range(len(ranks) - 2, -1, -1):
            groups[ranks[r]] = _barycenter_sort(groups[ranks[r]], groups[ranks[r + 1]], children)

    orders: dict[str, int] = {}
    for rank in ranks:
        for index, node_id in enumerate(groups[rank]):
            orders[node_id] = index

    logger.debug("Ordered %d ranks over %d iterations", len(ranks), iterations)
    return orders


def apply_order(rank_groups: dict[int, list[str]], orders: dict[str, int]) -> dict[int, list[str]]:
    """Return the rank groups with each rank sorted by the computed order."""
    return {
        rank: sorted(node_ids, key=lambda nid: orders.get(nid, 0))
        for rank, node_ids in sorted(rank_groups.items())
    }


def count_crossings(
    ordered_groups: dict[int, list[str]],
    hierarchy: dict[str, "HierarchyEntry"]
) -> int:
    """Count edge crossings between consecutive ranks (inversion count)."""
    total = 0
    ranks = sorted(ordered_groups)
    for r in range(len(ranks) - 1):
        upper = ordered_groups[ranks[r]]
        target_pos = {nid: i for i, nid in enumerate(ordered_groups[ranks[r + 1]])}
        pairs: list[tuple[int, int]] = []
        for source_pos, source_id in enumerate(upper):
            for child_id in hierarchy[source_id].child_ids:
                if child_id in target_pos:
                    pairs.append((source_pos, target_pos[child_id]))
        for i in range(len(pairs)):
            for j in range(i + 1, len(pairs)):
                a, b = pairs[i], pairs[j]
                if (a[0] < b[0] and a[1] > b[1]) or (a[0] > b[0] and a[1] < b[1]):
                    total += 1
    return total
