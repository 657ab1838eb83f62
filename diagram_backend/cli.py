#!/usr/bin/env python3
"""Diagram engine CLI - lay out, collapse and inspect diagram JSON files."""

import argparse
import json
import sys

from pydantic import ValidationError

from diagram_core import LayoutConfig, validation_summary

from . import settings
from .diagram_manager import DiagramManager


def _json_out(data):
    print(json.dumps(data))
    sys.exit(0)


def _error_out(message):
    print(json.dumps({"status": "error", "error": message}))
    sys.exit(1)


def _open(path) -> DiagramManager:
    manager = DiagramManager()
    try:
        manager.open_diagram(path)
    except FileNotFoundError as e:
        _error_out(str(e))
    except (ValueError, ValidationError) as e:
        _error_out(f"Failed to open diagram: {e}")
    return manager


def _save(manager: DiagramManager, args) -> str:
    return str(manager.save_diagram(args.output or args.file))


# ── Layout ───────────────────────────────────────────────────────────────────

def cmd_layout(args):
    manager = _open(args.file)
    try:
        config = LayoutConfig(
            type=args.type,
            direction=args.direction,
            node_spacing=args.node_spacing,
            rank_spacing=args.rank_spacing,
            padding=args.padding,
            mode=args.mode,
            sort_order=args.sort_order,
            sort_by_date=not args.no_sort_by_date,
            auto_spacing=not args.no_auto_spacing,
            animate=not args.no_animate,
        )
        result = manager.apply_layout(config, start_node_id=args.start_node, color_scheme=args.color_scheme)
    except (ValueError, ValidationError) as e:
        _error_out(str(e))
    path = _save(manager, args)
    _json_out({"status": "ok", "file": path, "layout": result.to_dict()})


# ── Collapse ─────────────────────────────────────────────────────────────────

def _toggle(args, collapse):
    manager = _open(args.file)
    node = manager.toggle_collapse(args.node_id, collapse)
    if node is None:
        _error_out(f"Node not found: {args.node_id}")
    path = _save(manager, args)
    diagram = manager.diagram
    _json_out({
        "status": "ok",
        "file": path,
        "node_id": node.id,
        "collapsed": node.data.collapsed,
        "hidden_node_ids": [n.id for n in diagram.nodes if not n.data.visible],
    })


def cmd_collapse(args):
    _toggle(args, True)


def cmd_expand(args):
    _toggle(args, False)


# ── Analysis ─────────────────────────────────────────────────────────────────

def cmd_hierarchy(args):
    manager = _open(args.file)
    _json_out({"status": "ok", "hierarchy": manager.get_hierarchy()})


def cmd_validate(args):
    manager = _open(args.file)
    issues = manager.validate()
    summary = validation_summary(issues)
    _json_out({
        "status": "ok" if summary["valid"] else "invalid",
        "issues": [i.to_dict() for i in issues],
        "summary": summary,
    })


# ── Folder explorer ──────────────────────────────────────────────────────────

def cmd_folder_mindmap(args):
    manager = DiagramManager()
    try:
        root = manager.import_folder(
            args.path,
            explorer_type=args.explorer_type,
            max_depth=args.max_depth,
            auto_collapse_depth=args.auto_collapse_depth,
        )
    except (FileNotFoundError, ValueError) as e:
        _error_out(str(e))

    result = {"status": "ok", "root_id": root.id, "node_count": len(manager.diagram.nodes)}
    if args.output:
        result["file"] = str(manager.save_diagram(args.output))
    else:
        result["diagram"] = manager.diagram.to_json_dict()
    _json_out(result)


# ── Service ──────────────────────────────────────────────────────────────────

def cmd_serve(args):
    import uvicorn
    from .main import app
    uvicorn.run(app, host=args.host, port=args.port)


def main(argv=None):
    parser = argparse.ArgumentParser(prog="diagram-engine", description="Diagram layout and visibility engine")
    parser.add_argument("--log-level", default=None, help="Override DIAGRAM_ENGINE_LOG_LEVEL")
    sub = parser.add_subparsers(dest="command", required=True)

    # Layout
    p = sub.add_parser("layout")
    p.add_argument("file")
    p.add_argument("--type", default="hierarchical")
    p.add_argument("--direction", default="TB")
    p.add_argument("--node-spacing", type=float, default=80)
    p.add_argument("--rank-spacing", type=float, default=100)
    p.add_argument("--padding", type=float, default=50)
    p.add_argument("--mode", default="standard")
    p.add_argument("--sort-order", default="top-to-bottom")
    p.add_argument("--start-node", default=None)
    p.add_argument("--color-scheme", default=None)
    p.add_argument("--no-sort-by-date", action="store_true", help="Timeline: keep current order instead of sorting by date")
    p.add_argument("--no-auto-spacing", action="store_true", help="Timeline: fixed gap between events")
    p.add_argument("--no-animate", action="store_true")
    p.add_argument("--output", default=None)

    # Collapse
    for name in ("collapse", "expand"):
        p = sub.add_parser(name)
        p.add_argument("file")
        p.add_argument("--node-id", required=True)
        p.add_argument("--output", default=None)

    # Analysis
    p = sub.add_parser("hierarchy")
    p.add_argument("file")

    p = sub.add_parser("validate")
    p.add_argument("file")

    # Folder explorer
    p = sub.add_parser("folder-mindmap")
    p.add_argument("path")
    p.add_argument("--explorer-type", default="static", choices=["static", "linked"])
    p.add_argument("--max-depth", type=int, default=6)
    p.add_argument("--auto-collapse-depth", type=int, default=settings.AUTO_COLLAPSE_DEPTH)
    p.add_argument("--output", default=None)

    # Service
    p = sub.add_parser("serve")
    p.add_argument("--host", default=settings.HOST)
    p.add_argument("--port", type=int, default=settings.PORT)

    args = parser.parse_args(argv)
    settings.configure_logging(args.log_level)

    cmd_map = {
        "layout": cmd_layout,
        "collapse": cmd_collapse,
        "expand": cmd_expand,
        "hierarchy": cmd_hierarchy,
        "validate": cmd_validate,
        "folder-mindmap": cmd_folder_mindmap,
        "serve": cmd_serve,
    }
    cmd_map[args.command](args)


if __name__ == "__main__":
    main()
