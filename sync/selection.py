"""
sync/selection.py

Selection state over logical identifiers, marquee hit-testing, and
re-application of selection highlights onto each freshly rendered SVG tree.

The selection never stores element handles: it survives re-renders because
it only holds logical ids, and highlights are re-derived from the current
identity tables after every render and every selection change.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List

from PyQt6.QtCore import QPointF, QRectF

from models import IdentityTables


SELECTED_ATTR = "data-selected"
STYLE_MARKER_ATTR = "data-selection-styles"

_SVG_NS = "http://www.w3.org/2000/svg"


class SelectionSet:
    """Insertion-ordered set of selected logical ids."""

    def __init__(self, ids: Iterable[str] = ()):
        self._ids: Dict[str, None] = dict.fromkeys(ids)

    def __contains__(self, logical_id: object) -> bool:
        return logical_id in self._ids

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._ids))

    def __len__(self) -> int:
        return len(self._ids)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SelectionSet):
            return list(self._ids) == list(other._ids)
        return NotImplemented

    def __repr__(self) -> str:
        return f"SelectionSet({list(self._ids)!r})"

    @property
    def ids(self) -> List[str]:
        return list(self._ids)

    def toggle(self, logical_id: str) -> None:
        """Add *logical_id* if absent, remove it if present."""
        if logical_id in self._ids:
            del self._ids[logical_id]
        else:
            self._ids[logical_id] = None

    def set_from_marquee(self, ids: Iterable[str], merge: bool = False) -> None:
        """Apply a marquee result.

        With *merge*, new ids are appended after the existing selection
        (duplicates dropped); otherwise the selection is replaced.
        """
        if not merge:
            self._ids = {}
        for logical_id in ids:
            self._ids.setdefault(logical_id, None)

    def replace(self, ids: Iterable[str]) -> None:
        self._ids = dict.fromkeys(ids)

    def clear(self) -> None:
        self._ids.clear()


# ─────────────────────────────────────────────────────────
# Highlights
# ─────────────────────────────────────────────────────────


def apply_highlights(selection: Iterable[str], tables: IdentityTables) -> int:
    """Mark the rendered handles of every selected id.

    All existing marks in the current tree are cleared first.  Selected ids
    that are not present in *tables* are skipped.

    Returns:
        Number of handles marked.
    """
    if tables.root is not None:
        for el in tables.root.iter():
            if SELECTED_ATTR in el.attrib:
                del el.attrib[SELECTED_ATTR]

    marked = 0
    for logical_id in selection:
        el = tables.handle_for(logical_id)
        if el is not None:
            el.set(SELECTED_ATTR, "true")
            marked += 1
    return marked


def inject_selection_styles(root: ET.Element, color: str) -> ET.Element:
    """Insert the selection highlight stylesheet at the top of *root*.

    Any stylesheet injected by a previous call is replaced.
    """
    for parent in list(root.iter()):
        for child in list(parent):
            if child.get(STYLE_MARKER_ATTR) is not None:
                parent.remove(child)

    style_el = ET.Element(f"{{{_SVG_NS}}}style")
    style_el.set(STYLE_MARKER_ATTR, "true")
    style_el.text = f"""
    [data-selected="true"] > rect,
    [data-selected="true"] > circle,
    [data-selected="true"] > ellipse,
    [data-selected="true"] > polygon,
    [data-selected="true"] > path,
    [data-selected="true"] > .label-container {{
      stroke: {color} !important;
      stroke-width: 3px !important;
    }}
    path[data-selected="true"] {{
      stroke: {color} !important;
      stroke-width: 3.5px !important;
    }}
    .node, .edgeLabel {{
      cursor: pointer;
    }}
    """
    root.insert(0, style_el)
    return style_el


# ─────────────────────────────────────────────────────────
# Marquee
# ─────────────────────────────────────────────────────────


@dataclass
class MarqueeGesture:
    """A box-select drag from *start* to *current* (same coordinate space as
    the node bounds)."""
    start: QPointF
    current: QPointF

    def rect(self) -> QRectF:
        return QRectF(
            min(self.start.x(), self.current.x()),
            min(self.start.y(), self.current.y()),
            abs(self.current.x() - self.start.x()),
            abs(self.current.y() - self.start.y()),
        )

    def exceeds_threshold(self, threshold: float) -> bool:
        """A drag only counts as a marquee once both sides exceed *threshold*."""
        r = self.rect()
        return r.width() > threshold and r.height() > threshold


def rects_intersect(a: QRectF, b: QRectF) -> bool:
    """Half-open overlap test; zero-area rectangles intersect nothing."""
    if a.width() <= 0 or a.height() <= 0 or b.width() <= 0 or b.height() <= 0:
        return False
    return (
        a.left() < b.right() and b.left() < a.right()
        and a.top() < b.bottom() and b.top() < a.bottom()
    )


def hit_test(bounds: Dict[str, QRectF], rect: QRectF) -> List[str]:
    """Ids whose bounding box intersects *rect*, in table order."""
    return [logical_id for logical_id, box in bounds.items() if rects_intersect(box, rect)]
