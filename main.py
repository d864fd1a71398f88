"""
main.py

MermaidSync - command line entry point

Runs the synchronisation engine headless against Mermaid files:
- classify a diagram and report its layout direction
- rename node and edge labels, change the layout direction
- inspect the identity tables of a rendered SVG
- render a diagram through the Mermaid CLI

Every command prints one JSON object.  Failures print
``{"status": "error", "error": ...}`` and exit with code 1.

Usage:
    python main.py classify diagram.mmd
    python main.py rename-node diagram.mmd B "Transform" --write
    python main.py direction diagram.mmd --toggle

Environment:
    MMDC_PATH=...           (optional, Mermaid CLI location)
    MERMAIDSYNC_TRACE=1     (optional, trace logging to stderr)
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from debug_trace import close_log, set_trace_enabled, trace
from mermaid.detect import classify, supports_structural_edit
from mermaid.identity import extract_node_label, resolve
from mermaid.mutator import parse_direction
from mermaid.renderer import RenderError, parse_svg, render_source, svg_to_string
from models import DIRECTIONS, IdentityTables
from sync.change_log import describe
from sync.session import DiagramSession


def _json_out(data: Dict[str, Any], code: int = 0):
    print(json.dumps(data, indent=2))
    close_log()
    sys.exit(code)


def _fail(message: str):
    _json_out({"status": "error", "error": message}, code=1)


def _read_text(path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as e:
        _fail(f"Cannot read {path}: {e.strerror or e}")


def _session_for(path: str) -> DiagramSession:
    return DiagramSession(_read_text(path), auto_render=False)


def _tables_summary(tables: IdentityTables) -> Dict[str, Any]:
    return {
        "nodes": {node_id: extract_node_label(el) for node_id, el in tables.nodes.items()},
        "edges": list(tables.edges),
        "edge_labels": list(tables.edge_labels),
        "bounds": {
            node_id: [r.x(), r.y(), r.width(), r.height()]
            for node_id, r in tables.node_bounds.items()
        },
    }


def _edit_result(args, session: DiagramSession, changed: bool) -> Dict[str, Any]:
    """Common output for commands that edit a file."""
    result: Dict[str, Any] = {
        "status": "ok",
        "changed": changed,
        "family": session.family,
    }
    entries = session.change_log.entries
    if entries:
        result["change"] = describe(entries[-1])
    if changed and args.write:
        Path(args.file).write_text(session.source, encoding="utf-8")
        result["written"] = args.file
        trace(f"Wrote {args.file}", "EDIT")
    else:
        result["source"] = session.source
    return result


# ── Commands ─────────────────────────────────────────────────────────────────

def cmd_classify(args):
    source = _read_text(args.file)
    family = classify(source)
    _json_out({
        "status": "ok",
        "family": family,
        "structural": supports_structural_edit(family),
        "direction": parse_direction(source),
    })


def cmd_direction(args):
    session = _session_for(args.file)
    current = session.direction
    if args.set is None and not args.toggle:
        _json_out({"status": "ok", "family": session.family, "direction": current})
    if current is None:
        _fail("No graph/flowchart direction declaration found")

    changed = session.toggle_direction() if args.toggle else session.set_direction(args.set)
    result = _edit_result(args, session, changed)
    result["direction"] = session.direction
    _json_out(result)


def cmd_rename_node(args):
    session = _session_for(args.file)
    if not session.structural:
        _fail(f"Diagram type '{session.family}' does not support node renames")
    changed = session.rename_node(args.node_id, args.new_label, old_label=args.old or "")
    _json_out(_edit_result(args, session, changed))


def cmd_rename_edge(args):
    session = _session_for(args.file)
    changed = session.rename_edge_label(args.old_label, args.new_label)
    _json_out(_edit_result(args, session, changed))


def cmd_inspect(args):
    try:
        root = parse_svg(_read_text(args.svg))
    except RenderError as e:
        _fail(e.message)
    summary = _tables_summary(resolve(root))
    _json_out({"status": "ok", **summary})


def cmd_render(args):
    source = _read_text(args.file)
    family = classify(source)
    try:
        root = render_source(source, family)
    except RenderError as e:
        _fail(e.message)

    tables = resolve(root)
    result: Dict[str, Any] = {
        "status": "ok",
        "family": family,
        "nodes": len(tables.nodes),
        "edges": len(tables.edges),
        "edge_labels": len(tables.edge_labels),
    }
    output = args.output or str(Path(args.file).with_suffix(".svg"))
    Path(output).write_text(svg_to_string(root), encoding="utf-8")
    result["output"] = output
    _json_out(result)


# ── Main ─────────────────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mermaidsync", description="Mermaid source sync CLI")
    parser.add_argument("--trace", action="store_true", help="Enable trace logging to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("classify", help="Report diagram family and direction")
    p.add_argument("file")

    p = sub.add_parser("direction", help="Read or change the layout direction")
    p.add_argument("file")
    group = p.add_mutually_exclusive_group()
    group.add_argument("--set", choices=list(DIRECTIONS) + ["TB"], type=str.upper)
    group.add_argument("--toggle", action="store_true")
    p.add_argument("--write", action="store_true", help="Write the result back to FILE")

    p = sub.add_parser("rename-node", help="Rename a node label")
    p.add_argument("file")
    p.add_argument("node_id")
    p.add_argument("new_label")
    p.add_argument("--old", help="Current label (enables the line fallback)")
    p.add_argument("--write", action="store_true")

    p = sub.add_parser("rename-edge", help="Rename an edge label")
    p.add_argument("file")
    p.add_argument("old_label")
    p.add_argument("new_label")
    p.add_argument("--write", action="store_true")

    p = sub.add_parser("inspect", help="Identity tables of a rendered SVG")
    p.add_argument("svg")

    p = sub.add_parser("render", help="Render FILE to SVG with mmdc")
    p.add_argument("file")
    p.add_argument("-o", "--output")

    return parser


def main(argv: Optional[List[str]] = None):
    """Command line entry point."""
    args = build_parser().parse_args(argv)
    if args.trace:
        set_trace_enabled(True)
    trace(f"Command: {args.command}", "MAIN")

    cmd_map = {
        "classify": cmd_classify,
        "direction": cmd_direction,
        "rename-node": cmd_rename_node,
        "rename-edge": cmd_rename_edge,
        "inspect": cmd_inspect,
        "render": cmd_render,
    }
    cmd_map[args.command](args)


if __name__ == "__main__":
    main()
