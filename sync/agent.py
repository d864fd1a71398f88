"""
sync/agent.py

Messages handed to the downstream agent: the explicit "send changes" payload
and the silent auto-fix report for broken tool-generated diagrams.

Transport framing is left to the host; everything here produces plain text.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from models import Family


SAMPLE_MERMAID = """graph TD
  A([Start]) --> B[Process Data]
  B --> C{Decision}
  C -->|Yes| D[Action A]
  C -->|No| E[Action B]
  D --> F([End])
  E --> F"""


def fence(source: str) -> str:
    return f"```mermaid\n{source}\n```"


@dataclass
class AgentPayload:
    """Downstream delta: serialised changes plus the current diagram state.

    Attributes:
        changes: ``ChangeLog.serialize()`` output (may be empty).
        source: Current source text.
        selection: Selected logical ids, in selection order.
        family: Current diagram family tag.
    """
    changes: str
    source: str
    selection: List[str] = field(default_factory=list)
    family: str = Family.UNKNOWN

    def to_message(self) -> str:
        parts: List[str] = []
        if self.changes:
            parts.append("The user edited the diagram:\n" + self.changes)
        else:
            parts.append("The user sent the diagram without edits.")
        parts.append(f"Diagram type: {self.family}")
        if self.selection:
            parts.append("Selected elements: " + ", ".join(self.selection))
        parts.append("Current code:\n" + fence(self.source))
        return "\n\n".join(parts)

    def to_dict(self) -> dict:
        return {
            "changes": self.changes,
            "source": self.source,
            "selection": list(self.selection),
            "family": self.family,
        }


def build_fix_message(error: str, source: str) -> str:
    """Auto-fix request sent when tool-supplied code fails to render."""
    return (
        "The Mermaid diagram has syntax errors. Please fix and regenerate.\n\n"
        f"Error: {error}\n\n"
        f"Current code:\n{fence(source)}"
    )


class ErrorReportTracker:
    """Pending render error awaiting its debounced auto-fix report.

    A report is produced at most once per distinct ``message::code-prefix``
    key, and only while the current source was supplied by the tool rather
    than typed by the user.  A successful render resets the tracker.
    """

    def __init__(self, code_prefix: int = 200):
        self.code_prefix = code_prefix
        self._pending: Optional[tuple[str, str]] = None
        self._last_sent_key: Optional[str] = None

    @property
    def has_pending(self) -> bool:
        return self._pending is not None

    def dedupe_key(self, message: str, source: str) -> str:
        return f"{message}::{source[:self.code_prefix]}"

    def record_error(self, message: str, source: str) -> None:
        """Replace any pending error with the latest one."""
        self._pending = (message, source)

    def take_report(self, tool_supplied: bool) -> Optional[str]:
        """Consume the pending error and return its fix message, if due.

        Returns ``None`` when nothing is pending, the same error was already
        reported, or the source did not come from the tool.  In the last two
        cases the pending error is kept, matching the debounce timer simply
        not firing a message.
        """
        if self._pending is None:
            return None
        message, source = self._pending
        key = self.dedupe_key(message, source)
        if key == self._last_sent_key or not tool_supplied:
            return None
        self._last_sent_key = key
        self._pending = None
        return build_fix_message(message, source)

    def reset(self) -> None:
        self._pending = None
        self._last_sent_key = None
