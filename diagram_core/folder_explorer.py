"""
Folder explorer - turn a file-system tree into a mind-map branch.

Generated nodes carry a FolderExplorerMetadata tag; that tag (not depth
alone) is what makes them eligible for auto-collapse.
"""

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from .collapse import apply_auto_collapse, get_all_descendants, DEFAULT_AUTO_COLLAPSE_DEPTH
from .models import Diagram, DiagramType, Edge, FolderExplorerMetadata, Node, NodeData

logger = logging.getLogger(__name__)

DEFAULT_SCAN_DEPTH = 6


class FileSystemNode(BaseModel):
    """One file or directory of a scanned tree."""
    name: str
    path: str
    is_directory: bool = False
    children: list["FileSystemNode"] = Field(default_factory=list)


def scan_directory(
    path: str | Path,
    max_depth: int = DEFAULT_SCAN_DEPTH,
    include_hidden: bool = False
) -> FileSystemNode:
    """
    Build a FileSystemNode tree for `path`.

    Directories come before files, each group sorted by name. Entries that
    cannot be read are skipped.
    """
    root = Path(path)
    if not root.exists():
        raise FileNotFoundError(f"Folder not found: {root}")

    def visit(entry: Path, depth: int) -> FileSystemNode:
        node = FileSystemNode(name=entry.name or str(entry), path=str(entry), is_directory=entry.is_dir())
        if not node.is_directory or depth >= max_depth:
            return node
        try:
            entries = list(entry.iterdir())
        except OSError as e:
            logger.warning("Skipping unreadable folder %s: %s", entry, e)
            return node
        entries.sort(key=lambda p: (not p.is_dir(), p.name.lower()))
        for child in entries:
            if not include_hidden and child.name.startswith("."):
                continue
            node.children.append(visit(child, depth + 1))
        return node

    return visit(root, 0)


def generate_node_id(path: str) -> str:
    """Stable node ID derived from a file-system path."""
    return f"folder-node-{re.sub(r'[^a-zA-Z0-9]', '-', path)}"


def _node_size(depth: int) -> tuple[float, float]:
    return (max(120, 160 - depth * 10), max(40, 60 - depth * 5))


def _create_nodes(
    diagram: Diagram,
    tree: FileSystemNode,
    parent_id: Optional[str],
    explorer_type: str,
    level: int,
    next_order: int
) -> tuple[Node, int]:
    """Add `tree` and its descendants below `parent_id`; returns (root node, next mm_order)."""
    root_node: Optional[Node] = None
    stack: list[tuple[FileSystemNode, Optional[str], int]] = [(tree, parent_id, level)]
    existing = {n.id for n in diagram.nodes}

    while stack:
        entry, parent, depth = stack.pop()
        node_id = generate_node_id(entry.path)
        if node_id in existing:
            logger.debug("Skipping duplicate folder node %s", node_id)
            continue
        existing.add(node_id)

        width, height = _node_size(depth)
        metadata = FolderExplorerMetadata(
            explorer_type=explorer_type,
            path=entry.path,
            is_directory=entry.is_directory,
            is_read_only=explorer_type == "linked",
            last_refreshed=datetime.utcnow().isoformat() if explorer_type == "linked" else None,
        )
        node = Node(
            id=node_id,
            label=entry.name,
            width=width,
            height=height,
            data=NodeData(level=depth, mm_order=next_order, folder_explorer=metadata),
        )
        next_order += 1
        diagram.nodes.append(node)
        if root_node is None:
            root_node = node

        if parent is not None:
            diagram.edges.append(Edge(source=parent, target=node_id))

        for child in reversed(entry.children):
            stack.append((child, node_id, depth + 1))

    return root_node, next_order


def generate_folder_mindmap(
    tree: FileSystemNode,
    explorer_type: str = "static",
    auto_collapse_depth: int = DEFAULT_AUTO_COLLAPSE_DEPTH,
    diagram: Optional[Diagram] = None
) -> tuple[Diagram, Optional[Node]]:
    """
    Generate a mind map from a file-system tree.

    Args:
        tree: Root of the scanned tree
        explorer_type: "static" (snapshot) or "linked" (read-only, refreshable)
        auto_collapse_depth: Generated nodes deeper than this start collapsed
        diagram: Diagram to add to; a new mind-map diagram when omitted

    Returns:
        (diagram, root node of the generated branch)
    """
    if diagram is None:
        diagram = Diagram(name=tree.name, diagram_type=DiagramType.MINDMAP.value)

    before = len(diagram.nodes)
    root, _ = _create_nodes(diagram, tree, None, explorer_type, 0, 0)
    created_ids = [n.id for n in diagram.nodes[before:]]
    apply_auto_collapse(diagram, auto_collapse_depth, node_ids=created_ids)

    logger.info("Generated folder mind map %s with %d nodes", tree.path, len(created_ids))
    return diagram, root


def generate_child_nodes(
    diagram: Diagram,
    parent: Node,
    tree: FileSystemNode,
    auto_collapse_depth: int = DEFAULT_AUTO_COLLAPSE_DEPTH
) -> list[Node]:
    """
    Attach the children of `tree` below an existing node (folder refresh).

    Levels continue from the parent's level; new nodes inherit the parent's
    explorer type and start hidden when the parent is collapsed or hidden.
    """
    metadata = parent.data.folder_explorer
    explorer_type = metadata.explorer_type if metadata else "static"
    next_order = (parent.data.mm_order or 0) + 1
    before = len(diagram.nodes)

    for child in tree.children:
        _, next_order = _create_nodes(diagram, child, parent.id, explorer_type, parent.data.level + 1, next_order)

    created = diagram.nodes[before:]
    if parent.data.collapsed or not parent.data.visible:
        created_ids = {n.id for n in created}
        for node in created:
            node.data.visible = False
        for edge in diagram.edges:
            if edge.target in created_ids:
                edge.visible = False
    apply_auto_collapse(diagram, auto_collapse_depth, node_ids=[n.id for n in created])
    return created


def remove_descendants(diagram: Diagram, node: Node) -> list[str]:
    """Delete every descendant of `node` and the edges touching them."""
    removed = {d.id for d in get_all_descendants(diagram, node)}
    diagram.nodes = [n for n in diagram.nodes if n.id not in removed]
    diagram.edges = [e for e in diagram.edges if e.source not in removed and e.target not in removed]
    return sorted(removed)
