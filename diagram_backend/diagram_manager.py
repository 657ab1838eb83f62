"""
Diagram Manager - Core logic for diagram state, persistence, and history.

This module implements:
- Single diagram state management (one diagram open at a time)
- O(1) node/edge lookups via index dictionaries
- Linear undo/redo history using snapshots
- JSON file persistence (collapsed/visible state and custom data included)
- Layout and collapse operations delegated to diagram_core
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Callable

from diagram_core.collapse import (
    toggle_collapse as core_toggle_collapse,
    get_all_descendants,
)
from diagram_core.folder_explorer import (
    generate_child_nodes,
    generate_folder_mindmap,
    remove_descendants,
    scan_directory,
)
from diagram_core.hierarchy import build_hierarchy
from diagram_core.layout import (
    layout as core_layout,
    LayoutResult,
    align_nodes as core_align_nodes,
    distribute_nodes as core_distribute_nodes,
)
from diagram_core.models import Diagram, DiagramType, Edge, LayoutConfig, Node, NodeData
from diagram_core.theme import ThemeCycle
from diagram_core.validation import validate_diagram, ValidationIssue

from . import settings

logger = logging.getLogger(__name__)

NODE_DATA_FIELDS = ("date", "mm_order")


class DiagramManager:
    """
    Manages a single diagram's state, history, and persistence.

    Features:
    - O(1) node/edge lookups via index dictionaries
    - Snapshot-based undo/redo history
    - Change callbacks for real-time sync
    - A theme cycle that colours new nodes across layout passes

    The history system works via snapshots:
    - Each mutation creates a full snapshot of the diagram state
    - Undo restores the previous snapshot
    - Redo re-applies a snapshot from the future stack
    """

    def __init__(self, max_history: int = settings.MAX_HISTORY):
        self._diagram: Optional[Diagram] = None
        self._file_path: Optional[Path] = None
        self._history: list[dict] = []  # Past states (snapshots)
        self._future: list[dict] = []   # Future states (for redo)
        self._max_history = max_history
        self._dirty = False  # True if unsaved changes exist
        self._on_change_callbacks: list[Callable] = []
        self._theme = ThemeCycle()

        # O(1) lookup indexes
        self._node_index: dict[str, Node] = {}          # node_id -> Node
        self._edge_index: dict[str, Edge] = {}          # edge_id -> Edge
        self._edges_by_node: dict[str, set[str]] = {}   # node_id -> set of edge_ids

    # --- Index Management ---

    def _rebuild_indexes(self):
        """Rebuild all indexes from the current diagram state."""
        self._node_index.clear()
        self._edge_index.clear()
        self._edges_by_node.clear()

        if self._diagram is None:
            return

        for node in self._diagram.nodes:
            self._node_index[node.id] = node
        for edge in self._diagram.edges:
            self._index_edge(edge)

    def _index_edge(self, edge: Edge):
        """Add an edge to the indexes."""
        self._edge_index[edge.id] = edge
        self._edges_by_node.setdefault(edge.source, set()).add(edge.id)
        self._edges_by_node.setdefault(edge.target, set()).add(edge.id)

    def _unindex_edge(self, edge: Edge):
        """Remove an edge from the indexes."""
        self._edge_index.pop(edge.id, None)
        if edge.source in self._edges_by_node:
            self._edges_by_node[edge.source].discard(edge.id)
        if edge.target in self._edges_by_node:
            self._edges_by_node[edge.target].discard(edge.id)

    # --- Properties ---

    @property
    def diagram(self) -> Optional[Diagram]:
        """Get the current diagram."""
        return self._diagram

    @property
    def file_path(self) -> Optional[Path]:
        """Get the current file path."""
        return self._file_path

    @property
    def is_dirty(self) -> bool:
        """Check if there are unsaved changes."""
        return self._dirty

    @property
    def can_undo(self) -> bool:
        return len(self._history) > 0

    @property
    def can_redo(self) -> bool:
        return len(self._future) > 0

    @property
    def theme(self) -> ThemeCycle:
        return self._theme

    # --- Change Callbacks ---

    def on_change(self, callback: Callable):
        """Register a callback for diagram changes."""
        self._on_change_callbacks.append(callback)

    def _notify_change(self):
        """Notify all registered callbacks of a change."""
        for callback in self._on_change_callbacks:
            callback()

    def _require_diagram(self) -> Diagram:
        if self._diagram is None:
            raise ValueError("No diagram open")
        return self._diagram

    def _mark_changed(self):
        self._dirty = True
        self._diagram.metadata.updated_at = datetime.utcnow()
        self._notify_change()

    # --- History Management ---

    def _save_to_history(self):
        """Save current state to history before a mutation."""
        if self._diagram is None:
            return

        # New action invalidates the redo stack
        self._future.clear()
        self._history.append(self._diagram.to_json_dict())

        if len(self._history) > self._max_history:
            self._history.pop(0)

    def _load(self, diagram: Diagram, file_path: Optional[Path]):
        self._diagram = diagram
        self._file_path = file_path
        self._history.clear()
        self._future.clear()
        self._dirty = False
        self._theme.reset()
        self._rebuild_indexes()
        self._notify_change()

    # --- File Operations ---

    def new_diagram(self, name: str = "Untitled Diagram", diagram_type: str = DiagramType.FLOWCHART.value) -> Diagram:
        """Create a new empty diagram."""
        self._load(Diagram(name=name, diagram_type=diagram_type), None)
        logger.info("Created diagram %s (%s)", name, diagram_type)
        return self._diagram

    def open_diagram(self, file_path: str | Path) -> Diagram:
        """Open a diagram from a JSON file."""
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Diagram file not found: {path}")

        with open(path, 'r') as f:
            data = json.load(f)

        self._load(Diagram.from_json_dict(data), path)
        logger.info("Opened %s (%d nodes, %d edges)", path, len(self._diagram.nodes), len(self._diagram.edges))
        return self._diagram

    def save_diagram(self, file_path: Optional[str | Path] = None) -> Path:
        """
        Save the diagram to a JSON file.

        If file_path is provided, save to that path (Save As).
        Otherwise, save to the current file_path.
        """
        if self._diagram is None:
            raise ValueError("No diagram to save")

        if file_path:
            path = Path(file_path)
        elif self._file_path:
            path = self._file_path
        else:
            raise ValueError("No file path specified and no current file path")

        self._diagram.metadata.updated_at = datetime.utcnow()
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w') as f:
            json.dump(self._diagram.to_json_dict(), f, indent=2)

        self._file_path = path
        self._dirty = False
        logger.info("Saved %s", path)
        return path

    # --- Undo/Redo ---

    def undo(self) -> Optional[Diagram]:
        """Undo the last action."""
        if not self.can_undo or self._diagram is None:
            return None

        self._future.append(self._diagram.to_json_dict())
        self._diagram = Diagram.from_json_dict(self._history.pop())
        self._dirty = True
        self._rebuild_indexes()
        self._notify_change()
        return self._diagram

    def redo(self) -> Optional[Diagram]:
        """Redo the last undone action."""
        if not self.can_redo or self._diagram is None:
            return None

        self._history.append(self._diagram.to_json_dict())
        self._diagram = Diagram.from_json_dict(self._future.pop())
        self._dirty = True
        self._rebuild_indexes()
        self._notify_change()
        return self._diagram

    # --- Node Operations (with O(1) lookups) ---

    def add_node(self, data: Optional[dict] = None, **kwargs) -> Node:
        """Add a new node to the diagram."""
        diagram = self._require_diagram()
        self._save_to_history()

        node = Node(data=NodeData(**(data or {})), **kwargs)
        if node.id in self._node_index:
            self._history.pop()
            raise ValueError(f"Node already exists: {node.id}")

        diagram.nodes.append(node)
        self._node_index[node.id] = node
        self._mark_changed()
        return node

    def update_node(self, node_id: str, **kwargs) -> Optional[Node]:
        """
        Update an existing node.

        `date` and `mm_order` are written to the node's data bag; None values
        are ignored.
        """
        self._require_diagram()

        node = self._node_index.get(node_id)
        if node is None:
            return None

        self._save_to_history()

        for key, value in kwargs.items():
            if value is None:
                continue
            if key in NODE_DATA_FIELDS:
                setattr(node.data, key, value)
            elif hasattr(node, key):
                setattr(node, key, value)

        self._mark_changed()
        return node

    def delete_node(self, node_id: str) -> bool:
        """Delete a node and all connected edges."""
        diagram = self._require_diagram()

        node = self._node_index.get(node_id)
        if node is None:
            return False

        self._save_to_history()

        diagram.nodes = [n for n in diagram.nodes if n.id != node_id]
        self._node_index.pop(node_id, None)

        connected_edge_ids = self._edges_by_node.pop(node_id, set())
        diagram.edges = [e for e in diagram.edges if e.id not in connected_edge_ids]
        for edge_id in connected_edge_ids:
            edge = self._edge_index.get(edge_id)
            if edge:
                self._unindex_edge(edge)

        self._mark_changed()
        return True

    def get_node(self, node_id: str) -> Optional[Node]:
        """Get a node by ID (O(1) lookup)."""
        return self._node_index.get(node_id)

    # --- Edge Operations (with O(1) lookups) ---

    def add_edge(self, source: str = None, target: str = None, label: str = "") -> Edge:
        """
        Add a new edge between two existing nodes.

        The edge starts with its target's visibility, so connecting a hidden
        node never produces a dangling visible edge.
        """
        diagram = self._require_diagram()

        if not source or not target:
            raise ValueError("Both source and target nodes must be specified")
        if source not in self._node_index:
            raise ValueError(f"Source node not found: {source}")
        target_node = self._node_index.get(target)
        if target_node is None:
            raise ValueError(f"Target node not found: {target}")

        self._save_to_history()

        edge = Edge(source=source, target=target, label=label, visible=target_node.data.visible)
        diagram.edges.append(edge)
        self._index_edge(edge)
        self._mark_changed()
        return edge

    def update_edge(self, edge_id: str, **kwargs) -> Optional[Edge]:
        """Update an existing edge's label."""
        self._require_diagram()

        edge = self._edge_index.get(edge_id)
        if edge is None:
            return None

        self._save_to_history()

        label = kwargs.get("label")
        if label is not None:
            edge.label = label

        self._mark_changed()
        return edge

    def delete_edge(self, edge_id: str) -> bool:
        """Delete an edge."""
        diagram = self._require_diagram()

        edge = self._edge_index.get(edge_id)
        if edge is None:
            return False

        self._save_to_history()
        diagram.edges = [e for e in diagram.edges if e.id != edge_id]
        self._unindex_edge(edge)
        self._mark_changed()
        return True

    def get_edge(self, edge_id: str) -> Optional[Edge]:
        """Get an edge by ID (O(1) lookup)."""
        return self._edge_index.get(edge_id)

    def get_edges_for_node(self, node_id: str) -> list[Edge]:
        """Get all edges connected to a node (O(1) index lookup)."""
        return [self._edge_index[eid] for eid in self._edges_by_node.get(node_id, set()) if eid in self._edge_index]

    # --- State ---

    def get_state(self) -> dict:
        """Get the full current state for API responses."""
        if self._diagram is None:
            return {
                "diagram": None,
                "file_path": None,
                "is_dirty": False,
                "can_undo": False,
                "can_redo": False
            }

        return {
            "diagram": self._diagram.to_json_dict(),
            "file_path": str(self._file_path) if self._file_path else None,
            "is_dirty": self._dirty,
            "can_undo": self.can_undo,
            "can_redo": self.can_redo
        }

    # --- Layout Operations (delegated to diagram_core.layout) ---

    def apply_layout(
        self,
        config: Optional[LayoutConfig] = None,
        start_node_id: Optional[str] = None,
        color_scheme: Optional[str] = None
    ) -> LayoutResult:
        """
        Lay out the diagram (or the subtree under start_node_id).

        Nodes without a colour receive the next colour of the theme cycle.
        """
        diagram = self._require_diagram()
        if start_node_id is not None and start_node_id not in self._node_index:
            raise ValueError(f"Node not found: {start_node_id}")
        if color_scheme is not None and color_scheme != self._theme.scheme_id:
            self._theme.reset(color_scheme)

        self._save_to_history()
        result = core_layout(diagram, config, start_node_id=start_node_id, theme=self._theme)
        self._mark_changed()

        strategy = result.strategy
        logger.info("Applied %s/%s layout to %d nodes",
                    strategy.kind.value, strategy.direction, len(result.positions))
        return result

    def align_nodes(self, node_ids: list[str], alignment: str = "left") -> bool:
        """Align nodes along an edge."""
        if self._diagram is None:
            return False

        self._save_to_history()
        success = core_align_nodes(self._diagram.nodes, node_ids, alignment)

        if success:
            self._mark_changed()
        else:
            self._history.pop()

        return success

    def distribute_nodes(self, node_ids: list[str], axis: str = "horizontal") -> bool:
        """Evenly distribute nodes along an axis."""
        if self._diagram is None:
            return False

        self._save_to_history()
        success = core_distribute_nodes(self._diagram.nodes, node_ids, axis)

        if success:
            self._mark_changed()
        else:
            self._history.pop()

        return success

    # --- Collapse / Hierarchy ---

    def toggle_collapse(self, node_id: str, collapse: bool) -> Optional[Node]:
        """Collapse or expand a node's branch. Returns None if the node does not exist."""
        diagram = self._require_diagram()

        node = self._node_index.get(node_id)
        if node is None:
            return None
        if node.data.collapsed == collapse:
            return node

        self._save_to_history()
        core_toggle_collapse(diagram, node, collapse)
        self._mark_changed()

        hidden = sum(1 for n in diagram.nodes if not n.data.visible)
        logger.info("%s %s (%d hidden nodes)", "Collapsed" if collapse else "Expanded", node_id, hidden)
        return node

    def get_descendants(self, node_id: str) -> Optional[list[Node]]:
        """All descendants of a node, or None if the node does not exist."""
        diagram = self._require_diagram()
        if node_id not in self._node_index:
            return None
        return get_all_descendants(diagram, node_id)

    def get_hierarchy(self) -> dict:
        """Derived ranks and adjacency for the current diagram."""
        diagram = self._require_diagram()
        hierarchy = build_hierarchy(diagram.nodes, diagram.edges)
        return {node_id: entry.to_dict() for node_id, entry in hierarchy.items()}

    # --- Folder Explorer ---

    def import_folder(
        self,
        folder_path: str | Path,
        explorer_type: str = "static",
        max_depth: int = 6,
        auto_collapse_depth: int = settings.AUTO_COLLAPSE_DEPTH,
        config: Optional[LayoutConfig] = None
    ) -> Node:
        """
        Scan a folder and add it to the diagram as a mind-map branch.

        A new mind-map diagram is created when none is open. The generated
        branch is laid out as a mind map around its root.
        """
        tree = scan_directory(folder_path, max_depth=max_depth)

        if self._diagram is None:
            self.new_diagram(name=tree.name, diagram_type=DiagramType.MINDMAP.value)

        self._save_to_history()
        _, root = generate_folder_mindmap(
            tree,
            explorer_type=explorer_type,
            auto_collapse_depth=auto_collapse_depth,
            diagram=self._diagram,
        )
        if root is None:
            self._history.pop()
            raise ValueError(f"Folder already in diagram: {folder_path}")
        self._rebuild_indexes()

        core_layout(
            self._diagram,
            config or LayoutConfig(type="mindmap", direction="right"),
            start_node_id=root.id,
            theme=self._theme,
        )
        self._mark_changed()
        logger.info("Imported folder %s as %s", folder_path, root.id)
        return root

    def refresh_folder(
        self,
        node_id: str,
        max_depth: int = 6,
        auto_collapse_depth: int = settings.AUTO_COLLAPSE_DEPTH,
        config: Optional[LayoutConfig] = None
    ) -> Optional[list[Node]]:
        """
        Rescan the folder behind a generated node and rebuild its branch.

        The node's descendants are replaced by the current folder contents,
        then the branch is laid out again around the node.

        Returns:
            The newly created nodes, or None if the node does not exist
        """
        diagram = self._require_diagram()
        node = self._node_index.get(node_id)
        if node is None:
            return None

        metadata = node.data.folder_explorer
        if metadata is None or not metadata.is_directory:
            raise ValueError(f"Node is not a generated folder: {node_id}")

        # Depth is relative to the node, so the branch keeps the original reach
        tree = scan_directory(metadata.path, max_depth=max(max_depth - node.data.level, 0))

        self._save_to_history()
        removed = remove_descendants(diagram, node)
        created = generate_child_nodes(diagram, node, tree, auto_collapse_depth=auto_collapse_depth)
        if metadata.explorer_type == "linked":
            metadata.last_refreshed = datetime.utcnow().isoformat()
        self._rebuild_indexes()

        core_layout(
            diagram,
            config or LayoutConfig(type="mindmap", direction="right"),
            start_node_id=node.id,
            theme=self._theme,
        )
        self._mark_changed()
        logger.info("Refreshed folder %s: %d removed, %d created", metadata.path, len(removed), len(created))
        return created

    # --- Validation ---

    def validate(self) -> list[ValidationIssue]:
        """Validate the current diagram."""
        return validate_diagram(self._require_diagram())


# Global instance for the application
diagram_manager = DiagramManager()
