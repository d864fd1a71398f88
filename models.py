"""
models.py

Data models and constants for MermaidSync.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Dict, Optional, Union

from PyQt6.QtCore import QRectF


# ----------------------------
# Diagram family tags
# ----------------------------

class Family:
    """Canonical diagram family tags returned by the classifier."""
    FLOWCHART = "flowchart"
    SEQUENCE = "sequenceDiagram"
    CLASS = "classDiagram"
    STATE = "stateDiagram"
    ER = "erDiagram"
    GANTT = "gantt"
    PIE = "pie"
    MINDMAP = "mindmap"
    TIMELINE = "timeline"
    GITGRAPH = "gitGraph"
    JOURNEY = "journey"
    QUADRANT = "quadrantChart"
    SANKEY = "sankey"
    XYCHART = "xychart"
    BLOCK = "block"
    ARCHITECTURE = "architecture"
    PACKET = "packet"
    KANBAN = "kanban"
    REQUIREMENT = "requirement"
    C4_CONTEXT = "C4Context"
    C4_CONTAINER = "C4Container"
    C4_COMPONENT = "C4Component"
    C4_DYNAMIC = "C4Dynamic"
    C4_DEPLOYMENT = "C4Deployment"
    UNKNOWN = "unknown"


# Families whose rendered output carries addressable node/edge ids.
# Aliases are accepted so a raw renderer hint resolves the same way.
STRUCTURAL_FAMILIES = frozenset({
    Family.FLOWCHART, "graph",
    Family.STATE, "stateDiagram-v2",
    Family.CLASS, "classDiagram-v2",
    Family.ER, "er",
})


# ----------------------------
# Layout directions
# ----------------------------

class Direction:
    """Flowchart layout direction tokens."""
    TOP_DOWN = "TD"
    LEFT_RIGHT = "LR"
    RIGHT_LEFT = "RL"
    BOTTOM_TOP = "BT"


# Toolbar cycle order
DIRECTIONS = (Direction.TOP_DOWN, Direction.LEFT_RIGHT, Direction.RIGHT_LEFT, Direction.BOTTOM_TOP)

# TB is Mermaid's alias for TD
DIRECTION_ALIASES: Dict[str, str] = {"TB": Direction.TOP_DOWN}


# ----------------------------
# Semantic edit records
# ----------------------------

@dataclass(frozen=True)
class RenameChange:
    """A node or edge label rename.

    For edge labels the subject id is the label text itself, since edge
    labels carry no renderer id.
    """
    node_id: str
    old_label: str
    new_label: str

    kind = "rename"


@dataclass(frozen=True)
class LayoutChange:
    """A flowchart layout direction change."""
    old_direction: str
    new_direction: str

    kind = "layout-change"


Change = Union[RenameChange, LayoutChange]


# ----------------------------
# Identity tables
# ----------------------------

@dataclass
class IdentityTables:
    """Logical-id keyed lookups into one rendered SVG tree.

    Attributes:
        root: Root ``<svg>`` element the handles belong to.
        nodes: Logical node id -> ``<g class="node">`` element.
        edges: Edge id -> edge ``<path>``/``<g>`` element.
        edge_labels: Label text -> ``<g class="edgeLabel">`` element.
        node_bounds: Logical node id -> bounding box in SVG user space.
    """
    root: Optional[ET.Element] = None
    nodes: Dict[str, ET.Element] = field(default_factory=dict)
    edges: Dict[str, ET.Element] = field(default_factory=dict)
    edge_labels: Dict[str, ET.Element] = field(default_factory=dict)
    node_bounds: Dict[str, QRectF] = field(default_factory=dict)

    def handle_for(self, logical_id: str) -> Optional[ET.Element]:
        """Return the node or edge element for *logical_id*, if rendered."""
        el = self.nodes.get(logical_id)
        if el is None:
            el = self.edges.get(logical_id)
        return el

    def is_empty(self) -> bool:
        return not (self.nodes or self.edges or self.edge_labels)
