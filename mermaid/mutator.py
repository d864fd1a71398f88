"""
mermaid/mutator.py

Targeted edits of Mermaid source text: node label rename, edge label rename
and flowchart layout direction.

There is no grammar here.  Each operation is an ordered list of narrowly
scoped regex strategies; the first one that matches wins and the rest of the
text is left byte-for-byte intact.  Every function is total: when nothing
matches, the *same* string object is returned so callers can detect a no-op
with ``result is source``.
"""

from __future__ import annotations

import re
from typing import List, Optional, Tuple

from models import DIRECTIONS, DIRECTION_ALIASES
from mermaid.detect import FRONT_MATTER_MARKER, is_directive_or_comment, skip_front_matter


# Node shape delimiters, most specific first so that compound shapes are
# never matched by their single-character prefix.
BRACKET_PAIRS: List[Tuple[str, str]] = [
    ("(((", ")))"),  # double circle
    ("([", "])"),    # stadium
    ("[[", "]]"),    # subroutine
    ("[(", ")]"),    # cylinder
    ("((", "))"),    # circle
    ("{{", "}}"),    # hexagon
    ("{", "}"),      # rhombus
    ("[/", "/]"),    # parallelogram
    ("[\\", "\\]"),  # parallelogram alt
    ("[/", "\\]"),   # trapezoid
    ("[\\", "/]"),   # trapezoid alt
    (">", "]"),      # asymmetric
    ("(", ")"),      # rounded
    ("[", "]"),      # rectangle
]

_PERMISSIVE_OPEN = r"(\[\[|\(\[|\(\(|\{\{|[\[\(\{>])"
_PERMISSIVE_CLOSE = r"(\]\]|\]\)|\)\)|\}\}|[\]\)\}])"

# Inline edge label forms: (opening run, arrow head)
_INLINE_EDGE_FORMS: List[Tuple[str, str]] = [
    (r"--", r"-->"),
    (r"==", r"==>"),
    (r"-\.", r"\.->"),
]

_DIRECTION_TOKENS = r"(?:TD|TB|LR|RL|BT)"
_DIRECTION_LINE_RE = re.compile(r"^(\s*(?:graph|flowchart)\s+)(" + _DIRECTION_TOKENS + r")\b", re.IGNORECASE)


def _id_prefix(node_id: str) -> str:
    """Pattern for a node id that is not the tail of a longer identifier."""
    return r"(?<![\w])(" + re.escape(node_id) + r"\s*)"


def _requote(old_content: str, new_label: str) -> str:
    if len(old_content) >= 2 and old_content.startswith('"') and old_content.endswith('"'):
        return f'"{new_label}"'
    return new_label


# ─────────────────────────────────────────────────────────
# Node labels
# ─────────────────────────────────────────────────────────


def rename_node(source: str, node_id: str, old_label: str, new_label: str) -> str:
    """Replace the label of *node_id* in *source*.

    Strategies, in order:
        1. ``id<open>label<close>`` for each known bracket pair.
        2. A permissive combined bracket pattern.
        3. The first line containing *old_label* verbatim (indentation
           based diagrams such as mindmaps, where the text is the node).

    Only the first match is replaced.

    Args:
        source: Mermaid source text.
        node_id: Logical node id.
        old_label: Label currently shown for the node (may be empty).
        new_label: Replacement label.

    Returns:
        The edited text, or *source* itself when nothing matched.
    """
    if not node_id:
        return source
    prefix = _id_prefix(node_id)

    for open_br, close_br in BRACKET_PAIRS:
        # Label text stops before the first closing character on its line
        content = r"([^" + re.escape(close_br[-1]) + r"\n]*?)"
        regex = re.compile(prefix + re.escape(open_br) + content + re.escape(close_br))
        m = regex.search(source)
        if m:
            label = _requote(m.group(2), new_label)
            return source[:m.start()] + m.group(1) + open_br + label + close_br + source[m.end():]

    fallback = re.compile(prefix + _PERMISSIVE_OPEN + r"(.+?)" + _PERMISSIVE_CLOSE)
    m = fallback.search(source)
    if m:
        label = _requote(m.group(3), new_label)
        return source[:m.start(3)] + label + source[m.end(3):]

    if old_label:
        line_re = re.compile(r"^(\s*)(.*" + re.escape(old_label) + r".*)$", re.MULTILINE)
        m = line_re.search(source)
        if m:
            replaced = m.group(2).replace(old_label, new_label, 1)
            return source[:m.start(2)] + replaced + source[m.end(2):]

    return source


# ─────────────────────────────────────────────────────────
# Edge labels
# ─────────────────────────────────────────────────────────


def rename_edge_label(source: str, old_label: str, new_label: str) -> str:
    """Replace an edge label in *source*.

    Handles ``A -->|old| B`` (every occurrence), inline forms such as
    ``A -- old --> B`` (every occurrence), and finally falls back to the first
    plain occurrence of *old_label* anywhere in the text.

    Returns:
        The edited text, or *source* itself when *old_label* is empty or
        absent.
    """
    if not old_label:
        return source
    escaped = re.escape(old_label)

    pipe_re = re.compile(r"\|(\s*)" + escaped + r"(\s*)\|")
    if pipe_re.search(source):
        return pipe_re.sub(lambda m: f"|{m.group(1)}{new_label}{m.group(2)}|", source)

    for opening, arrow in _INLINE_EDGE_FORMS:
        dash_re = re.compile(r"(" + opening + r"\s*)" + escaped + r"(\s*" + arrow + r")")
        if dash_re.search(source):
            return dash_re.sub(lambda m: m.group(1) + new_label + m.group(2), source)

    idx = source.find(old_label)
    if idx >= 0:
        return source[:idx] + new_label + source[idx + len(old_label):]

    return source


# ─────────────────────────────────────────────────────────
# Layout direction
# ─────────────────────────────────────────────────────────


def _find_direction_line(lines: List[str]) -> Tuple[int, Optional[re.Match]]:
    """Locate the ``graph|flowchart <dir>`` header line.

    Blank lines, ``%%`` lines and a leading front-matter block are skipped;
    any other non-matching line ends the search.
    """
    i = skip_front_matter(lines)
    while i < len(lines):
        stripped = lines[i].strip()
        if not stripped or is_directive_or_comment(stripped) or stripped == FRONT_MATTER_MARKER:
            i += 1
            continue
        return i, _DIRECTION_LINE_RE.match(lines[i])
    return -1, None


def parse_direction(source: str) -> Optional[str]:
    """Return the declared layout direction (``TD``, ``LR``, ``RL``, ``BT``).

    ``TB`` is reported as ``TD``.  ``None`` when the first substantive line
    is not a ``graph``/``flowchart`` declaration with a direction.
    """
    _, m = _find_direction_line(source.split("\n"))
    if m is None:
        return None
    token = m.group(2).upper()
    return DIRECTION_ALIASES.get(token, token)


def set_layout_direction(source: str, direction: str) -> str:
    """Rewrite the direction token of the flowchart header line.

    Returns:
        The edited text, or *source* itself when there is no direction
        declaration or *direction* is not a supported token.
    """
    direction = direction.upper()
    direction = DIRECTION_ALIASES.get(direction, direction)
    if direction not in DIRECTIONS:
        return source

    lines = source.split("\n")
    idx, m = _find_direction_line(lines)
    if m is None:
        return source
    line = lines[idx]
    lines[idx] = line[:m.start(2)] + direction + line[m.end(2):]
    result = "\n".join(lines)
    return source if result == source else result


def next_direction(current: str) -> str:
    """The direction after *current* in the TD -> LR -> RL -> BT cycle."""
    current = DIRECTION_ALIASES.get(current, current)
    if current not in DIRECTIONS:
        return DIRECTIONS[0]
    return DIRECTIONS[(DIRECTIONS.index(current) + 1) % len(DIRECTIONS)]
