"""
Coordinate assignment for hierarchical and grid layouts.

Both strategies are pure functions: they take node ids, sizes and spacing and
return top-left coordinates without touching the diagram. All positions are
normalized so the smallest bounding coordinate equals `padding`.
"""

import math

Size = tuple[float, float]
Point = tuple[float, float]


def normalize(
    centers: dict[str, Point],
    sizes: dict[str, Size],
    padding: float
) -> dict[str, Point]:
    """
    Convert center points to top-left points shifted so the minimal
    bounding x and y both equal `padding`.
    """
    if not centers:
        return {}

    min_x = min(cx - sizes[nid][0] / 2 for nid, (cx, _) in centers.items())
    min_y = min(cy - sizes[nid][1] / 2 for nid, (_, cy) in centers.items())

    positions: dict[str, Point] = {}
    for nid, (cx, cy) in centers.items():
        width, height = sizes[nid]
        positions[nid] = (
            cx - width / 2 - min_x + padding,
            cy - height / 2 - min_y + padding,
        )
    return positions


def hierarchical_positions(
    ordered_groups: dict[int, list[str]],
    sizes: dict[str, Size],
    direction: str = "TB",
    node_spacing: float = 80,
    rank_spacing: float = 100,
    padding: float = 50
) -> dict[str, Point]:
    """
    Place ranks along the main axis and siblings along the cross axis.

    Args:
        ordered_groups: Node ids per rank, each rank already in crossing-reduced order
        sizes: (width, height) per node id
        direction: "TB", "BT", "LR" or "RL"
        node_spacing: Gap between neighbouring nodes of one rank
        rank_spacing: Gap between consecutive ranks
        padding: Minimal x/y of the resulting bounding box

    Returns:
        Top-left (x, y) per node id
    """
    is_vertical = direction in ("TB", "BT")
    is_reversed = direction in ("BT", "RL")

    ranks = sorted(ordered_groups, reverse=is_reversed)
    centers: dict[str, Point] = {}
    main_pos = padding

    for rank in ranks:
        node_ids = ordered_groups[rank]
        if not node_ids:
            continue

        # Cross extent runs along the rank, main extent is the rank's depth
        cross_extents = [sizes[nid][0] if is_vertical else sizes[nid][1] for nid in node_ids]
        main_extent = max(sizes[nid][1] if is_vertical else sizes[nid][0] for nid in node_ids)

        total = sum(cross_extents) + (len(node_ids) - 1) * node_spacing
        cross_pos = -total / 2  # centered on the rank midpoint

        for nid, extent in zip(node_ids, cross_extents):
            cross_center = cross_pos + extent / 2
            main_center = main_pos + main_extent / 2
            if is_vertical:
                centers[nid] = (cross_center, main_center)
            else:
                centers[nid] = (main_center, cross_center)
            cross_pos += extent + node_spacing

        main_pos += main_extent + rank_spacing

    return normalize(centers, sizes, padding)


def grid_positions(
    node_ids: list[str],
    sizes: dict[str, Size],
    node_spacing: float = 80,
    rank_spacing: float = 100,
    padding: float = 50
) -> dict[str, Point]:
    """
    Arrange nodes row-major in ceil(sqrt(n)) columns.

    Columns advance by each node's width plus `node_spacing`; rows advance by
    the tallest node of the row plus `rank_spacing`.
    """
    if not node_ids:
        return {}

    columns = math.ceil(math.sqrt(len(node_ids)))
    positions: dict[str, Point] = {}
    current_x = padding
    current_y = padding
    row_height = 0.0

    for index, nid in enumerate(node_ids):
        width, height = sizes[nid]
        positions[nid] = (current_x, current_y)
        row_height = max(row_height, height)

        if (index + 1) % columns == 0:
            current_x = padding
            current_y += row_height + rank_spacing
            row_height = 0.0
        else:
            current_x += width + node_spacing

    return positions
