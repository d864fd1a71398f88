"""
sync package

Session-side state for keeping a rendered Mermaid diagram and its source text
in step: selection, change log, background rendering and agent messages.
"""

from sync.change_log import ChangeLog
from sync.selection import MarqueeGesture, SelectionSet
from sync.session import DiagramSession

__all__ = ["ChangeLog", "DiagramSession", "MarqueeGesture", "SelectionSet"]
