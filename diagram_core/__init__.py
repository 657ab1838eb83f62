"""
Diagram Core - Layout and visibility engine for flowcharts, mind maps,
fishbone diagrams and timelines.

This package provides the models, hierarchy/ordering/positioning pipeline
and collapse/expand state machine shared by the backend API and the CLI.
"""

from .models import (
    # Enums
    NodeShape,
    DiagramType,
    LayoutType,
    LayoutDirection,
    MindmapDirection,
    TimelineOrientation,
    LayoutMode,
    SortOrder,
    # Core models
    FolderExplorerMetadata,
    NodeData,
    Node,
    Edge,
    DiagramMetadata,
    Diagram,
    LayoutConfig,
    # API request models
    CreateNodeRequest,
    UpdateNodeRequest,
    CreateEdgeRequest,
    UpdateEdgeRequest,
)

from .hierarchy import HierarchyEntry, build_hierarchy, group_by_rank, compute_levels
from .ordering import order_ranks, count_crossings
from .layout import layout, resolve_strategy, LayoutResult, LayoutStrategy, align_nodes, distribute_nodes
from .collapse import (
    toggle_collapse, has_children, get_all_descendants,
    sync_edge_visibility, apply_auto_collapse,
)
from .theme import ThemeCycle, get_color_scheme
from .folder_explorer import FileSystemNode, scan_directory, generate_folder_mindmap
from .validation import validate_diagram, validation_summary, ValidationIssue, IssueSeverity

__all__ = [
    # Enums
    "NodeShape",
    "DiagramType",
    "LayoutType",
    "LayoutDirection",
    "MindmapDirection",
    "TimelineOrientation",
    "LayoutMode",
    "SortOrder",
    # Models
    "FolderExplorerMetadata",
    "NodeData",
    "Node",
    "Edge",
    "DiagramMetadata",
    "Diagram",
    "LayoutConfig",
    "CreateNodeRequest",
    "UpdateNodeRequest",
    "CreateEdgeRequest",
    "UpdateEdgeRequest",
    # Hierarchy & ordering
    "HierarchyEntry",
    "build_hierarchy",
    "group_by_rank",
    "compute_levels",
    "order_ranks",
    "count_crossings",
    # Layout
    "layout",
    "resolve_strategy",
    "LayoutResult",
    "LayoutStrategy",
    "align_nodes",
    "distribute_nodes",
    # Collapse
    "toggle_collapse",
    "has_children",
    "get_all_descendants",
    "sync_edge_visibility",
    "apply_auto_collapse",
    # Theme
    "ThemeCycle",
    "get_color_scheme",
    # Folder explorer
    "FileSystemNode",
    "scan_directory",
    "generate_folder_mindmap",
    # Validation
    "validate_diagram",
    "validation_summary",
    "ValidationIssue",
    "IssueSeverity",
]
