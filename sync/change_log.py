"""
sync/change_log.py

Coalescing log of semantic diagram edits, serialised to natural language for
the downstream agent.
"""

from __future__ import annotations

from typing import Iterator, List, Optional

from models import Change, LayoutChange, RenameChange


def _merge(previous: Change, change: Change) -> Optional[Change]:
    """Combine *change* into *previous* when they describe the same subject.

    Returns the merged record, or ``None`` when they must stay separate.
    """
    if isinstance(previous, RenameChange) and isinstance(change, RenameChange):
        if previous.node_id == change.node_id:
            return RenameChange(change.node_id, previous.old_label, change.new_label)
        return None
    if isinstance(previous, LayoutChange) and isinstance(change, LayoutChange):
        return LayoutChange(previous.old_direction, change.new_direction)
    return None


def describe(change: Change) -> str:
    if isinstance(change, RenameChange):
        return f"Renamed node '{change.node_id}' from '{change.old_label}' to '{change.new_label}'"
    return f"Changed layout direction from {change.old_direction} to {change.new_direction}"


class ChangeLog:
    """Append-only edit log with merge-with-previous coalescing.

    A run of renames of the same id, or a run of direction changes, keeps
    a single entry holding the first "before" and the latest "after" value.
    """

    def __init__(self):
        self._changes: List[Change] = []

    def record(self, change: Change) -> None:
        if self._changes:
            merged = _merge(self._changes[-1], change)
            if merged is not None:
                self._changes[-1] = merged
                return
        self._changes.append(change)

    def serialize(self) -> str:
        return "\n".join(f"{i}. {describe(c)}" for i, c in enumerate(self._changes, start=1))

    def clear(self) -> None:
        self._changes = []

    @property
    def entries(self) -> List[Change]:
        return list(self._changes)

    @property
    def count(self) -> int:
        return len(self._changes)

    @property
    def is_empty(self) -> bool:
        return not self._changes

    def __len__(self) -> int:
        return len(self._changes)

    def __iter__(self) -> Iterator[Change]:
        return iter(list(self._changes))
