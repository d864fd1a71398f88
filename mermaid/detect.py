"""
mermaid/detect.py

Detect the Mermaid diagram family from source text.

Only the header is inspected: an optional ``---`` front-matter block and any
``%%`` directive/comment lines are skipped, then the first remaining line is
matched against the known diagram keywords.
"""

from __future__ import annotations

import re
from typing import Dict, List

from models import Family, STRUCTURAL_FAMILIES


# Lower-cased keyword -> canonical family tag
_KEYWORD_FAMILIES: Dict[str, str] = {
    "flowchart":      Family.FLOWCHART,
    "graph":          Family.FLOWCHART,
    "sequencediagram": Family.SEQUENCE,
    "classdiagram":   Family.CLASS,
    "statediagram":   Family.STATE,
    "erdiagram":      Family.ER,
    "gantt":          Family.GANTT,
    "pie":            Family.PIE,
    "mindmap":        Family.MINDMAP,
    "timeline":       Family.TIMELINE,
    "gitgraph":       Family.GITGRAPH,
    "journey":        Family.JOURNEY,
    "quadrantchart":  Family.QUADRANT,
    "sankey":         Family.SANKEY,
    "xychart":        Family.XYCHART,
    "block":          Family.BLOCK,
    "architecture":   Family.ARCHITECTURE,
    "packet":         Family.PACKET,
    "kanban":         Family.KANBAN,
    "requirement":    Family.REQUIREMENT,
    "requirementdiagram": Family.REQUIREMENT,
    "c4context":      Family.C4_CONTEXT,
    "c4container":    Family.C4_CONTAINER,
    "c4component":    Family.C4_COMPONENT,
    "c4dynamic":      Family.C4_DYNAMIC,
    "c4deployment":   Family.C4_DEPLOYMENT,
}

# Longest first so e.g. "C4Component" is never cut short by a shorter alternative
_TYPE_RE = re.compile(
    r"^(" + "|".join(sorted(_KEYWORD_FAMILIES, key=len, reverse=True)) + r")\b",
    re.IGNORECASE,
)

FRONT_MATTER_MARKER = "---"


def skip_front_matter(lines: List[str]) -> int:
    """Return the index of the first line after a leading front-matter block.

    An unterminated block consumes every line.
    """
    if not lines or lines[0].strip() != FRONT_MATTER_MARKER:
        return 0
    i = 1
    while i < len(lines) and lines[i].strip() != FRONT_MATTER_MARKER:
        i += 1
    return i + 1


def is_directive_or_comment(stripped: str) -> bool:
    """True for ``%%{init: ...}%%`` directives and ``%%`` comments."""
    return stripped.startswith("%%")


def classify(source: str) -> str:
    """Detect the diagram family of *source*.

    Args:
        source: Mermaid source text.

    Returns:
        A ``Family`` tag such as ``"flowchart"`` or ``"sequenceDiagram"``;
        ``"unknown"`` when no header keyword is found.
    """
    lines = source.strip().split("\n")
    i = skip_front_matter(lines)

    while i < len(lines):
        stripped = lines[i].strip()
        if not stripped or is_directive_or_comment(stripped):
            i += 1
            continue
        break

    if i >= len(lines):
        return Family.UNKNOWN

    m = _TYPE_RE.match(lines[i].strip())
    if m is None:
        return Family.UNKNOWN
    return _KEYWORD_FAMILIES[m.group(1).lower()]


def supports_structural_edit(family: str) -> bool:
    """Whether *family* exposes addressable node/edge ids once rendered."""
    return family in STRUCTURAL_FAMILIES
