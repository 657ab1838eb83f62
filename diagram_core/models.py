"""
Core data models for diagrams and layout requests.

These models define the canonical schema the layout and visibility engine
reads and mutates:
- Nodes with geometry (x, y, width, height) and a `data` bag carrying
  level, collapsed, visible and sibling order
- Edges connecting nodes (source/target) with a visibility flag that always
  mirrors the target node's visibility
- LayoutConfig, the immutable request consumed by one layout pass

Field Naming Convention:
- Edges use `source` and `target`; legacy `from`/`to` keys are accepted on input
- LayoutConfig uses snake_case; camelCase keys (`nodeSpacing`) are accepted on input
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Any
from pydantic import BaseModel, ConfigDict, Field, model_validator
import re
import uuid


class NodeShape(str, Enum):
    """Visual shapes for nodes on the canvas."""
    RECTANGLE = "rectangle"
    ROUNDED = "rounded"
    ELLIPSE = "ellipse"
    DIAMOND = "diamond"
    PILL = "pill"


class DiagramType(str, Enum):
    """Diagram families the editor supports."""
    FLOWCHART = "flowchart"
    MINDMAP = "mindmap"
    FISHBONE = "fishbone"
    TIMELINE = "timeline"


class LayoutType(str, Enum):
    """Layout families understood by `diagram_core.layout.layout`."""
    HIERARCHICAL = "hierarchical"
    TREE = "tree"
    GRID = "grid"
    MINDMAP = "mindmap"
    FISHBONE = "fishbone"
    TIMELINE = "timeline"


class LayoutDirection(str, Enum):
    """Main-axis direction for hierarchical layouts."""
    TB = "TB"  # top to bottom
    BT = "BT"  # bottom to top
    LR = "LR"  # left to right
    RL = "RL"  # right to left


class MindmapDirection(str, Enum):
    """Where mind-map branches grow relative to the root."""
    RIGHT = "right"
    LEFT = "left"
    TOP = "top"
    BOTTOM = "bottom"
    BOTH = "both"
    RADIAL = "radial"


class TimelineOrientation(str, Enum):
    """Axis along which timeline events are laid out."""
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


class LayoutMode(str, Enum):
    """Gap presets for mind-map layouts."""
    STANDARD = "standard"
    COMPACT = "compact"


class SortOrder(str, Enum):
    """Secondary ordering of mind-map children (after mm_order)."""
    CLOCKWISE = "clockwise"
    COUNTER_CLOCKWISE = "counter-clockwise"
    TOP_TO_BOTTOM = "top-to-bottom"
    LEFT_TO_RIGHT = "left-to-right"


def generate_node_id() -> str:
    """Generate a unique node ID."""
    return f"n{uuid.uuid4().hex[:8]}"


def generate_edge_id() -> str:
    """Generate a unique edge ID."""
    return f"e{uuid.uuid4().hex[:8]}"


class FolderExplorerMetadata(BaseModel):
    """Tag carried by nodes generated from a file-system tree."""
    is_folder_explorer: bool = True
    explorer_type: str = "static"  # "static" or "linked"
    path: str
    is_directory: bool = False
    is_read_only: bool = False
    last_refreshed: Optional[str] = None


class NodeData(BaseModel):
    """
    Per-node state bag.

    Unknown keys are preserved so custom data survives a save/load cycle.
    """
    model_config = ConfigDict(extra="allow")

    level: int = Field(default=0, ge=0)
    collapsed: bool = False
    visible: bool = True
    order: int = 0
    mm_order: Optional[int] = None
    date: Optional[str] = None
    folder_explorer: Optional[FolderExplorerMetadata] = None

    @model_validator(mode='before')
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        """Convert camelCase keys written by older documents."""
        if isinstance(data, dict):
            if 'mmOrder' in data and 'mm_order' not in data:
                data['mm_order'] = data.pop('mmOrder')
            if 'folderExplorer' in data and 'folder_explorer' not in data:
                data['folder_explorer'] = data.pop('folderExplorer')
        return data

    @property
    def is_generated(self) -> bool:
        """True for nodes produced from an external, depth-bounded hierarchy."""
        return self.folder_explorer is not None and self.folder_explorer.is_folder_explorer


class Node(BaseModel):
    """A node in the diagram."""
    id: str = Field(default_factory=generate_node_id)
    label: str = "New Node"
    shape: str = NodeShape.ROUNDED.value
    color: Optional[str] = None  # None until a theme colour is assigned
    x: float = 0
    y: float = 0
    width: float = 120
    height: float = 50
    data: NodeData = Field(default_factory=NodeData)

    @property
    def visible(self) -> bool:
        return self.data.visible

    @property
    def collapsed(self) -> bool:
        return self.data.collapsed

    def center(self) -> tuple[float, float]:
        """Get the center point of the node."""
        return (self.x + self.width / 2, self.y + self.height / 2)

    def bounds(self) -> tuple[float, float, float, float]:
        """Get the bounding box (x, y, right, bottom)."""
        return (self.x, self.y, self.x + self.width, self.y + self.height)


class Edge(BaseModel):
    """
    A directed edge from a parent (source) to a child (target).

    `visible` is maintained by the collapse engine and always equals the
    target node's visibility.
    """
    id: str = Field(default_factory=generate_edge_id)
    source: str
    target: str
    label: str = ""
    visible: bool = True

    @model_validator(mode='before')
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        """Convert legacy 'from'/'to' fields to 'source'/'target'."""
        if isinstance(data, dict):
            if 'from' in data and 'source' not in data:
                data['source'] = data.pop('from')
            if 'sourceId' in data and 'source' not in data:
                data['source'] = data.pop('sourceId')
            if 'to' in data and 'target' not in data:
                data['target'] = data.pop('to')
            if 'targetId' in data and 'target' not in data:
                data['target'] = data.pop('targetId')
        return data


class DiagramMetadata(BaseModel):
    """Metadata about the diagram."""
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class Diagram(BaseModel):
    """
    The complete diagram structure.
    This is what gets saved to/loaded from JSON files.
    """
    id: str = Field(default_factory=lambda: f"diagram-{uuid.uuid4().hex[:8]}")
    name: str = "Untitled Diagram"
    diagram_type: str = DiagramType.FLOWCHART.value
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    metadata: DiagramMetadata = Field(default_factory=DiagramMetadata)

    def to_json_dict(self) -> dict:
        """Convert to JSON-serializable dict with proper field names."""
        return {
            "id": self.id,
            "name": self.name,
            "diagram_type": self.diagram_type,
            "nodes": [n.model_dump(mode="json") for n in self.nodes],
            "edges": [e.model_dump(mode="json") for e in self.edges],
            "metadata": {
                "created_at": self.metadata.created_at.isoformat(),
                "updated_at": self.metadata.updated_at.isoformat(),
            }
        }

    @classmethod
    def from_json_dict(cls, data: dict) -> "Diagram":
        """Create a Diagram from a JSON dict (handles legacy edge keys)."""
        nodes = [Node(**n) for n in data.get('nodes', [])]
        edges = [Edge(**e) for e in data.get('edges', [])]

        meta_data = data.get('metadata', {})
        metadata = DiagramMetadata(
            created_at=datetime.fromisoformat(meta_data['created_at']) if 'created_at' in meta_data else datetime.utcnow(),
            updated_at=datetime.fromisoformat(meta_data['updated_at']) if 'updated_at' in meta_data else datetime.utcnow(),
        )

        return cls(
            id=data.get('id', f"diagram-{uuid.uuid4().hex[:8]}"),
            name=data.get('name', 'Untitled Diagram'),
            diagram_type=data.get('diagram_type', DiagramType.FLOWCHART.value),
            nodes=nodes,
            edges=edges,
            metadata=metadata
        )

    def get_node(self, node_id: str) -> Optional[Node]:
        """Get a node by ID (O(n) - use DiagramManager for indexed access)."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def get_edge(self, edge_id: str) -> Optional[Edge]:
        """Get an edge by ID (O(n) - use DiagramManager for indexed access)."""
        for edge in self.edges:
            if edge.id == edge_id:
                return edge
        return None

    def node_map(self) -> dict[str, Node]:
        return {n.id: n for n in self.nodes}

    def outgoing_edges(self, node_id: str) -> list[Edge]:
        return [e for e in self.edges if e.source == node_id]

    def incoming_edges(self, node_id: str) -> list[Edge]:
        return [e for e in self.edges if e.target == node_id]


_CAMEL_RE = re.compile(r'(?<!^)(?=[A-Z])')


class LayoutConfig(BaseModel):
    """
    Immutable layout request consumed once per layout pass.

    `type` and `direction` are plain strings so an unsupported combination
    can fall back to a default strategy instead of failing validation.
    """
    model_config = ConfigDict(frozen=True)

    type: str = LayoutType.HIERARCHICAL.value
    direction: str = LayoutDirection.TB.value
    node_spacing: float = Field(default=80, ge=0)
    rank_spacing: float = Field(default=100, ge=0)
    padding: float = Field(default=50, ge=0)
    animate: bool = True
    # Mind-map and timeline options
    mode: str = LayoutMode.STANDARD.value
    sort_order: str = SortOrder.TOP_TO_BOTTOM.value
    sort_by_date: bool = True
    auto_spacing: bool = True

    @model_validator(mode='before')
    @classmethod
    def convert_camel_case(cls, data: Any) -> Any:
        """Accept camelCase keys (nodeSpacing, rankSpacing, sortOrder, ...)."""
        if isinstance(data, dict):
            converted = {}
            for key, value in data.items():
                snake = _CAMEL_RE.sub('_', key).lower()
                if snake not in data or snake == key:
                    converted[snake] = value
            return converted
        return data


# --- API Request/Response Models ---

class CreateNodeRequest(BaseModel):
    """Request to create a new node."""
    label: str = "New Node"
    shape: str = NodeShape.ROUNDED.value
    color: Optional[str] = None
    x: float = 0
    y: float = 0
    width: float = Field(default=120, gt=0)
    height: float = Field(default=50, gt=0)
    data: dict[str, Any] = Field(default_factory=dict)


class UpdateNodeRequest(BaseModel):
    """Request to update an existing node (partial update)."""
    label: Optional[str] = None
    shape: Optional[str] = None
    color: Optional[str] = None
    x: Optional[float] = None
    y: Optional[float] = None
    width: Optional[float] = Field(default=None, gt=0)
    height: Optional[float] = Field(default=None, gt=0)
    date: Optional[str] = None
    mm_order: Optional[int] = None


class CreateEdgeRequest(BaseModel):
    """Request to create a new edge."""
    source: str = ""
    target: str = ""
    label: str = ""

    @model_validator(mode='before')
    @classmethod
    def convert_legacy_fields(cls, data: Any) -> Any:
        """Convert legacy 'from'/'to' fields to 'source'/'target'."""
        if isinstance(data, dict):
            if 'from' in data and 'source' not in data:
                data['source'] = data.pop('from')
            if 'to' in data and 'target' not in data:
                data['target'] = data.pop('to')
        return data


class UpdateEdgeRequest(BaseModel):
    """Request to update an existing edge."""
    label: Optional[str] = None
