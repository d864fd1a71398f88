"""
mermaid/identity.py

Map a freshly rendered Mermaid SVG tree to logical diagram identifiers.

Mermaid regenerates the whole SVG on every render and decorates element ids
with renderer-specific prefixes and counters (``flowchart-A-0``,
``classId-Foo-3``).  This module strips those decorations so that the same
diagram entity resolves to the same logical id across renders, and builds the
node / edge / edge-label lookup tables for one render generation.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from typing import List, Optional, Tuple

from PyQt6.QtCore import QRectF

from models import IdentityTables


# Raw node id patterns, tried in order.  Group 1 is the logical id.
_NODE_ID_PATTERNS = (
    re.compile(r"^flowchart-(.+)-\d+$"),
    re.compile(r"^state-(.+?)(?:-\d+)?$"),
    re.compile(r"^classId-(.+?)(?:-\d+)?$"),
    re.compile(r"^entity-(.+)-\d+$"),
)

_EDGE_ID_PREFIXES = ("L_", "L-", "edge")


# ─────────────────────────────────────────────────────────
# Element helpers
# ─────────────────────────────────────────────────────────


def _local_tag(el: ET.Element) -> str:
    """Tag name without its ``{namespace}`` prefix."""
    tag = el.tag if isinstance(el.tag, str) else ""
    return tag.rsplit("}", 1)[-1]


def _has_class(el: ET.Element, class_name: str) -> bool:
    return class_name in el.get("class", "").split()


def _parse_translate(transform: str) -> Tuple[float, float]:
    """Extract (tx, ty) from a ``translate(x, y)`` transform string."""
    m = re.search(r"translate\(\s*([-+]?\d*\.?\d+)(?:[,\s]+([-+]?\d*\.?\d+))?", transform or "")
    if m:
        return float(m.group(1)), float(m.group(2) or 0.0)
    return 0.0, 0.0


def _float_attr(el: ET.Element, name: str, default: float = 0.0) -> float:
    try:
        return float(el.get(name, "") or default)
    except ValueError:
        return default


def _joined_text(elements: List[ET.Element]) -> str:
    """Join the trimmed text content of *elements* with single spaces."""
    parts = []
    for el in elements:
        content = "".join(el.itertext()).strip()
        if content:
            parts.append(content)
    return " ".join(parts)


# ─────────────────────────────────────────────────────────
# Identifier normalisation
# ─────────────────────────────────────────────────────────


def normalize_node_id(raw_id: str) -> str:
    """Strip renderer decorations from a node element id.

    ``flowchart-A-0`` -> ``A``, ``state-Idle-2`` -> ``Idle``,
    ``classId-Animal-1`` -> ``Animal``.  Unrecognised ids pass through.
    """
    for pattern in _NODE_ID_PATTERNS:
        m = pattern.match(raw_id)
        if m:
            return m.group(1)
    return raw_id


def extract_edge_id(el: ET.Element) -> Optional[str]:
    """Return the edge id of *el*, or ``None`` for anonymous edges."""
    raw_id = el.get("id", "")
    if raw_id and raw_id.startswith(_EDGE_ID_PREFIXES):
        return raw_id
    return None


# ─────────────────────────────────────────────────────────
# Label extraction
# ─────────────────────────────────────────────────────────


def extract_node_label(node_el: ET.Element) -> str:
    """Extract the visible label of a ``<g class="node">`` element.

    Mermaid v11 renders labels as ``<span class="nodeLabel">`` inside a
    ``<foreignObject>``; older versions and some diagram types use native
    SVG ``<text>``.
    """
    label_els = [el for el in node_el.iter() if _has_class(el, "nodeLabel")]
    text = _joined_text(label_els)
    if text:
        return text
    return _joined_text([el for el in node_el.iter() if _local_tag(el) == "text"])


def extract_edge_label_text(label_el: ET.Element) -> str:
    """Extract the text of a ``<g class="edgeLabel">`` element.

    Probes ``span.edgeLabel``, then any nested ``.edgeLabel``, then native
    ``<text>`` runs.
    """
    nested = [el for el in label_el.iter() if el is not label_el and _has_class(el, "edgeLabel")]

    for el in nested:
        if _local_tag(el) == "span":
            content = "".join(el.itertext()).strip()
            if content:
                return content

    for el in nested:
        content = "".join(el.itertext()).strip()
        if content:
            return content

    return _joined_text([el for el in label_el.iter() if _local_tag(el) == "text"])


# ─────────────────────────────────────────────────────────
# Geometry
# ─────────────────────────────────────────────────────────


def _shape_bounds(node_el: ET.Element) -> Optional[QRectF]:
    """Bounding box of the first shape inside a node, in the node's frame."""
    for el in node_el.iter():
        tag = _local_tag(el)
        dx, dy = _parse_translate(el.get("transform", ""))
        if tag == "rect":
            w = _float_attr(el, "width")
            h = _float_attr(el, "height")
            if w > 0 and h > 0:
                return QRectF(_float_attr(el, "x") + dx, _float_attr(el, "y") + dy, w, h)
        elif tag == "circle":
            r = _float_attr(el, "r")
            if r > 0:
                cx = _float_attr(el, "cx") + dx
                cy = _float_attr(el, "cy") + dy
                return QRectF(cx - r, cy - r, 2 * r, 2 * r)
        elif tag == "ellipse":
            rx = _float_attr(el, "rx")
            ry = _float_attr(el, "ry")
            if rx > 0 and ry > 0:
                cx = _float_attr(el, "cx") + dx
                cy = _float_attr(el, "cy") + dy
                return QRectF(cx - rx, cy - ry, 2 * rx, 2 * ry)
        elif tag == "polygon":
            nums = [float(n) for n in re.findall(r"[-+]?\d*\.?\d+", el.get("points", ""))]
            xs, ys = nums[0::2], nums[1::2]
            if xs and ys:
                return QRectF(min(xs) + dx, min(ys) + dy, max(xs) - min(xs), max(ys) - min(ys))
    return None


# ─────────────────────────────────────────────────────────
# Public API
# ─────────────────────────────────────────────────────────


def resolve(root: ET.Element) -> IdentityTables:
    """Build the identity tables for one rendered SVG tree.

    Walks the tree once, accumulating ``translate()`` offsets so that node
    bounds are expressed in the root's user space.

    Args:
        root: Root ``<svg>`` element of a Mermaid render.

    Returns:
        Fresh ``IdentityTables``; never merged with earlier renders.
    """
    tables = IdentityTables(root=root)

    def _walk(el: ET.Element, ox: float, oy: float) -> None:
        tx, ty = _parse_translate(el.get("transform", ""))
        ox, oy = ox + tx, oy + ty
        tag = _local_tag(el)

        if tag == "g" and _has_class(el, "node"):
            raw_id = el.get("id", "")
            if raw_id:
                logical_id = normalize_node_id(raw_id)
                tables.nodes[logical_id] = el
                local = _shape_bounds(el)
                if local is not None:
                    tables.node_bounds[logical_id] = local.translated(ox, oy)
        elif (tag == "path" and _has_class(el, "flowchart-link")) or (
            tag == "g" and (_has_class(el, "edge") or _has_class(el, "edgePath"))
        ):
            edge_id = extract_edge_id(el)
            if edge_id:
                tables.edges[edge_id] = el
        elif tag == "g" and _has_class(el, "edgeLabel"):
            text = extract_edge_label_text(el)
            if text:
                tables.edge_labels[text] = el

        for child in el:
            _walk(child, ox, oy)

    _walk(root, 0.0, 0.0)
    return tables


def find_owner(tables: IdentityTables, el: ET.Element) -> Tuple[Optional[str], Optional[str]]:
    """Resolve a hit element to ``(kind, logical_id)``.

    *kind* is ``"node"``, ``"edge"`` or ``"edgeLabel"``; ``(None, None)``
    when *el* is not inside an addressable element.
    """
    parent_map = {c: p for p in tables.root.iter() for c in p} if tables.root is not None else {}
    reverse = (
        ("node", {id(v): k for k, v in tables.nodes.items()}),
        ("edge", {id(v): k for k, v in tables.edges.items()}),
        ("edgeLabel", {id(v): k for k, v in tables.edge_labels.items()}),
    )
    current: Optional[ET.Element] = el
    while current is not None:
        for kind, lookup in reverse:
            logical_id = lookup.get(id(current))
            if logical_id is not None:
                return kind, logical_id
        current = parent_map.get(current)
    return None, None
