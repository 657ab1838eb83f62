"""
Diagram Engine Backend - FastAPI Application

This is the main entry point for the diagram engine service.
It provides:
- REST API for diagram operations (CRUD for nodes/edges, file ops, undo/redo)
- Layout, collapse/expand and hierarchy endpoints backed by diagram_core
- Folder import as a generated mind-map branch, and refresh of imported folders
- CORS configuration for local frontend development
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from diagram_core import (
    CreateNodeRequest, UpdateNodeRequest,
    CreateEdgeRequest, UpdateEdgeRequest,
    DiagramType, LayoutConfig,
)
from diagram_core.validation import validation_summary

from . import settings
from .diagram_manager import diagram_manager

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan handler for startup/shutdown tasks."""
    settings.configure_logging()
    logger.info("Diagram engine API starting")
    yield
    logger.info("Diagram engine API stopped")


# --- FastAPI App ---

app = FastAPI(
    title="Diagram Engine API",
    description="Layout and visibility engine for flowcharts, mind maps, fishbone diagrams and timelines",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Health Check ---

@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "diagram_open": diagram_manager.diagram is not None}


# --- Diagram State ---

@app.get("/api/diagram")
async def get_diagram():
    """Get the current diagram state."""
    return diagram_manager.get_state()


# --- File Operations ---

@app.post("/api/diagram/new")
async def new_diagram(
    name: str = Query(default="Untitled Diagram"),
    diagram_type: str = Query(default=DiagramType.FLOWCHART.value)
):
    """Create a new empty diagram."""
    diagram = diagram_manager.new_diagram(name=name, diagram_type=diagram_type)
    return {"success": True, "diagram": diagram.to_json_dict()}


class OpenDiagramRequest(BaseModel):
    file_path: str


@app.post("/api/diagram/open")
async def open_diagram(request: OpenDiagramRequest):
    """Open a diagram from a JSON file."""
    try:
        diagram = diagram_manager.open_diagram(request.file_path)
        return {
            "success": True,
            "diagram": diagram.to_json_dict(),
            "file_path": str(diagram_manager.file_path)
        }
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Failed to open diagram: {e}")


class SaveDiagramRequest(BaseModel):
    file_path: Optional[str] = None


@app.post("/api/diagram/save")
async def save_diagram(request: SaveDiagramRequest):
    """Save the diagram to a JSON file."""
    try:
        path = diagram_manager.save_diagram(request.file_path)
        return {"success": True, "file_path": str(path)}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except OSError as e:
        raise HTTPException(status_code=500, detail=f"Failed to save: {e}")


# --- Undo/Redo ---

@app.post("/api/undo")
async def undo():
    """Undo the last action."""
    diagram = diagram_manager.undo()
    if diagram:
        return {"success": True, "diagram": diagram.to_json_dict()}
    return {"success": False, "message": "Nothing to undo"}


@app.post("/api/redo")
async def redo():
    """Redo the last undone action."""
    diagram = diagram_manager.redo()
    if diagram:
        return {"success": True, "diagram": diagram.to_json_dict()}
    return {"success": False, "message": "Nothing to redo"}


# --- Node Operations ---

@app.post("/api/nodes")
async def create_node(request: CreateNodeRequest):
    """Create a new node."""
    try:
        node = diagram_manager.add_node(
            label=request.label,
            shape=request.shape,
            color=request.color,
            x=request.x,
            y=request.y,
            width=request.width,
            height=request.height,
            data=request.data
        )
        return {"success": True, "node": node.model_dump(mode="json")}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/api/nodes/{node_id}")
async def get_node(node_id: str):
    """Get a specific node."""
    node = diagram_manager.get_node(node_id)
    if node:
        return {"success": True, "node": node.model_dump(mode="json")}
    raise HTTPException(status_code=404, detail="Node not found")


@app.patch("/api/nodes/{node_id}")
async def update_node(node_id: str, request: UpdateNodeRequest):
    """Update a node."""
    try:
        node = diagram_manager.update_node(node_id, **request.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if node:
        return {"success": True, "node": node.model_dump(mode="json")}
    raise HTTPException(status_code=404, detail="Node not found")


@app.delete("/api/nodes/{node_id}")
async def delete_node(node_id: str):
    """Delete a node and its connected edges."""
    try:
        success = diagram_manager.delete_node(node_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if success:
        return {"success": True}
    raise HTTPException(status_code=404, detail="Node not found")


# --- Collapse / Hierarchy ---

class CollapseRequest(BaseModel):
    collapsed: bool = True


@app.post("/api/nodes/{node_id}/collapse")
async def collapse_node(node_id: str, request: CollapseRequest):
    """Collapse (hide the branch) or expand a node."""
    try:
        node = diagram_manager.toggle_collapse(node_id, request.collapsed)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if node is None:
        raise HTTPException(status_code=404, detail="Node not found")

    diagram = diagram_manager.diagram
    return {
        "success": True,
        "node": node.model_dump(mode="json"),
        "hidden_node_ids": [n.id for n in diagram.nodes if not n.data.visible],
        "hidden_edge_ids": [e.id for e in diagram.edges if not e.visible],
    }


@app.get("/api/nodes/{node_id}/descendants")
async def get_descendants(node_id: str):
    """List every node reachable from a node."""
    try:
        descendants = diagram_manager.get_descendants(node_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if descendants is None:
        raise HTTPException(status_code=404, detail="Node not found")
    return {"success": True, "node_ids": [n.id for n in descendants]}


@app.get("/api/hierarchy")
async def get_hierarchy():
    """Derived ranks and parent/child lists of the current diagram."""
    try:
        return {"success": True, "hierarchy": diagram_manager.get_hierarchy()}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


# --- Edge Operations ---

@app.post("/api/edges")
async def create_edge(request: CreateEdgeRequest):
    """Create a new edge."""
    try:
        edge = diagram_manager.add_edge(
            source=request.source,
            target=request.target,
            label=request.label
        )
        return {"success": True, "edge": edge.model_dump(mode="json")}
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/api/edges/{edge_id}")
async def get_edge(edge_id: str):
    """Get a specific edge."""
    edge = diagram_manager.get_edge(edge_id)
    if edge:
        return {"success": True, "edge": edge.model_dump(mode="json")}
    raise HTTPException(status_code=404, detail="Edge not found")


@app.patch("/api/edges/{edge_id}")
async def update_edge(edge_id: str, request: UpdateEdgeRequest):
    """Update an edge."""
    try:
        edge = diagram_manager.update_edge(edge_id, label=request.label)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if edge:
        return {"success": True, "edge": edge.model_dump(mode="json")}
    raise HTTPException(status_code=404, detail="Edge not found")


@app.delete("/api/edges/{edge_id}")
async def delete_edge(edge_id: str):
    """Delete an edge."""
    try:
        success = diagram_manager.delete_edge(edge_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if success:
        return {"success": True}
    raise HTTPException(status_code=404, detail="Edge not found")


# --- Layout ---

class LayoutRequest(BaseModel):
    config: LayoutConfig = Field(default_factory=LayoutConfig)
    start_node_id: Optional[str] = None
    color_scheme: Optional[str] = None


@app.post("/api/layout")
async def apply_layout(request: LayoutRequest):
    """Lay out the diagram, or the subtree under start_node_id."""
    try:
        result = diagram_manager.apply_layout(
            config=request.config,
            start_node_id=request.start_node_id,
            color_scheme=request.color_scheme
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"success": True, "layout": result.to_dict()}


class AlignNodesRequest(BaseModel):
    node_ids: list[str]
    alignment: str = "left"  # left, center, right, top, middle, bottom


@app.post("/api/layout/align")
async def align_nodes(request: AlignNodesRequest):
    """Align nodes along an edge."""
    success = diagram_manager.align_nodes(
        node_ids=request.node_ids,
        alignment=request.alignment
    )
    if success:
        return {"success": True}
    raise HTTPException(status_code=400, detail="Need at least 2 nodes and a known alignment")


class DistributeNodesRequest(BaseModel):
    node_ids: list[str]
    axis: str = "horizontal"  # horizontal, vertical


@app.post("/api/layout/distribute")
async def distribute_nodes(request: DistributeNodesRequest):
    """Distribute nodes evenly along an axis."""
    success = diagram_manager.distribute_nodes(
        node_ids=request.node_ids,
        axis=request.axis
    )
    if success:
        return {"success": True}
    raise HTTPException(status_code=400, detail="Need at least 3 nodes and a known axis")


# --- Folder Explorer ---

class FolderMindmapRequest(BaseModel):
    path: str
    explorer_type: str = "static"  # static, linked
    max_depth: int = Field(default=6, ge=0)
    auto_collapse_depth: int = Field(default=settings.AUTO_COLLAPSE_DEPTH, ge=0)


@app.post("/api/folder-mindmap")
async def folder_mindmap(request: FolderMindmapRequest):
    """Import a folder as a generated mind-map branch."""
    try:
        root = diagram_manager.import_folder(
            request.path,
            explorer_type=request.explorer_type,
            max_depth=request.max_depth,
            auto_collapse_depth=request.auto_collapse_depth
        )
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {
        "success": True,
        "root_id": root.id,
        "diagram": diagram_manager.diagram.to_json_dict()
    }


class RefreshFolderRequest(BaseModel):
    max_depth: int = Field(default=6, ge=0)
    auto_collapse_depth: int = Field(default=settings.AUTO_COLLAPSE_DEPTH, ge=0)


@app.post("/api/nodes/{node_id}/refresh-folder")
async def refresh_folder(node_id: str, request: Optional[RefreshFolderRequest] = None):
    """Rescan a generated folder node and rebuild its branch."""
    request = request or RefreshFolderRequest()
    try:
        created = diagram_manager.refresh_folder(
            node_id,
            max_depth=request.max_depth,
            auto_collapse_depth=request.auto_collapse_depth
        )
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if created is None:
        raise HTTPException(status_code=404, detail="Node not found")
    return {
        "success": True,
        "created_node_ids": [n.id for n in created],
        "diagram": diagram_manager.diagram.to_json_dict()
    }


# --- Validation ---

@app.get("/api/diagram/validate")
async def validate_current_diagram():
    """
    Validate the current diagram for structural and visibility issues.

    Returns a list of issues (errors, warnings, info) and a summary.
    """
    try:
        issues = diagram_manager.validate()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {
        "success": True,
        "issues": [issue.to_dict() for issue in issues],
        "summary": validation_summary(issues)
    }


def run():
    """Run the API with uvicorn."""
    import uvicorn
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
