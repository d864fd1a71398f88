"""
sync/session.py

DiagramSession - the state container that ties the source text, the render
pipeline, the identity tables, the selection and the change log together.

All state lives on the session object and every mutation happens on the Qt
event-loop thread.  The only asynchronous step is the render, which runs in
a RenderWorker on a QThread and reports back through generation-tagged
signals; results for a superseded generation are dropped.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from typing import Callable, List, Optional, Set, Tuple

from PyQt6.QtCore import QObject, QThread, QTimer, pyqtSignal

from debug_trace import trace
from models import (
    DIRECTION_ALIASES,
    DIRECTIONS,
    Change,
    IdentityTables,
    LayoutChange,
    RenameChange,
)
from mermaid import mutator
from mermaid.detect import classify, supports_structural_edit
from mermaid.identity import extract_node_label, find_owner, resolve
from mermaid.renderer import svg_to_string
from sync.agent import SAMPLE_MERMAID, AgentPayload, ErrorReportTracker
from sync.change_log import ChangeLog
from sync.render_worker import RenderWorker
from sync.selection import (
    MarqueeGesture,
    SelectionSet,
    apply_highlights,
    hit_test,
    inject_selection_styles,
)


class DiagramSession(QObject):
    """
    One editable diagram and everything derived from it.

    Signals:
        code_changed(str, object): New source text and the Change record
            (``None`` for direct text edits and tool loads)
        render_error(object): Diagnostic message, or ``None`` after a
            successful render
        selection_changed(list): Full list of selected logical ids
        error_report_ready(str): Debounced auto-fix message for a broken
            tool-supplied diagram
    """

    code_changed = pyqtSignal(str, object)
    render_error = pyqtSignal(object)
    selection_changed = pyqtSignal(list)
    error_report_ready = pyqtSignal(str)

    def __init__(self, source: str = SAMPLE_MERMAID, settings=None,
                 render: Optional[Callable] = None, auto_render: bool = True,
                 parent: Optional[QObject] = None):
        """
        Args:
            source: Initial source text.
            settings: ``AppSettings``; the global settings when omitted.
            render: Render function handed to each RenderWorker.
            auto_render: Start a render after every source change.
            parent: Optional Qt parent.
        """
        super().__init__(parent)
        if settings is None:
            from settings import get_settings
            settings = get_settings().settings
        self.settings = settings

        self._source = source
        self._family = classify(source)
        self._tool_supplied = False
        self._generation = 0
        self._render = render
        self.auto_render = auto_render

        self.selection = SelectionSet()
        self.selection_mode = False
        self.change_log = ChangeLog()
        self.tables = IdentityTables()
        self.last_error: Optional[str] = None

        self._errors = ErrorReportTracker(settings.sync.error_code_prefix)
        self._error_timer = QTimer(self)
        self._error_timer.setSingleShot(True)
        self._error_timer.setInterval(settings.sync.error_fix_delay_ms)
        self._error_timer.timeout.connect(self.flush_error_report)

        # Running renders; references are held until each thread finishes
        self._active: Set[Tuple[QThread, RenderWorker]] = set()

    # ─────────────────────────────────────────────────────────
    # State
    # ─────────────────────────────────────────────────────────

    @property
    def source(self) -> str:
        return self._source

    @property
    def family(self) -> str:
        return self._family

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def tool_supplied(self) -> bool:
        return self._tool_supplied

    @property
    def direction(self) -> Optional[str]:
        return mutator.parse_direction(self._source)

    @property
    def structural(self) -> bool:
        """Whether selection and rename are offered for the current family."""
        return supports_structural_edit(self._family)

    def node_label(self, node_id: str) -> str:
        el = self.tables.nodes.get(node_id)
        return extract_node_label(el) if el is not None else ""

    def current_svg(self) -> Optional[str]:
        """Markup of the last good render, highlights included."""
        if self.tables.root is None:
            return None
        return svg_to_string(self.tables.root)

    # ─────────────────────────────────────────────────────────
    # Source changes
    # ─────────────────────────────────────────────────────────

    def _set_source(self, source: str, change: Optional[Change] = None):
        previous_family = self._family
        self._source = source
        self._family = classify(source)

        if change is not None:
            self.change_log.record(change)
            trace(f"Recorded {change.kind}: {change}", "EDIT")

        self.code_changed.emit(source, change)

        if self._family != previous_family:
            trace(f"Family switch {previous_family} -> {self._family}", "SYNC")
            if len(self.selection):
                self.selection.clear()
                self._selection_updated()

        if self.auto_render:
            self.request_render()

    def load_diagram(self, source: str):
        """Start a new diagram session with source supplied by the agent/tool."""
        self.change_log.clear()
        self._tool_supplied = True
        trace(f"Loaded tool diagram ({len(source)} chars)", "SYNC")
        self._set_source(source)

    def edit_source(self, source: str) -> bool:
        """Apply a direct text edit from the code editor."""
        if source == self._source:
            return False
        self._tool_supplied = False
        self._set_source(source)
        return True

    def _apply_edit(self, result: str, change: Change) -> bool:
        if result is self._source or result == self._source:
            trace(f"No-op {change.kind}, nothing matched", "EDIT")
            return False
        self._tool_supplied = False
        self._set_source(result, change)
        return True

    # ─────────────────────────────────────────────────────────
    # Semantic edits
    # ─────────────────────────────────────────────────────────

    def rename_node(self, node_id: str, new_label: str, old_label: Optional[str] = None) -> bool:
        """Rename the label of *node_id*.

        Args:
            node_id: Logical node id.
            new_label: Requested label; surrounding whitespace is dropped.
            old_label: Current label. Read from the last render when omitted.

        Returns:
            True if the source changed and a RenameChange was recorded.
        """
        if old_label is None:
            old_label = self.node_label(node_id)
        new_label = new_label.strip()
        if not new_label or new_label == old_label:
            return False
        result = mutator.rename_node(self._source, node_id, old_label, new_label)
        return self._apply_edit(result, RenameChange(node_id, old_label, new_label))

    def rename_edge_label(self, old_label: str, new_label: str) -> bool:
        """Rename an edge label; the label text is the subject id."""
        new_label = new_label.strip()
        if not old_label or not new_label or new_label == old_label:
            return False
        result = mutator.rename_edge_label(self._source, old_label, new_label)
        return self._apply_edit(result, RenameChange(old_label, old_label, new_label))

    def set_direction(self, direction: str) -> bool:
        current = self.direction
        if current is None:
            return False
        target = DIRECTION_ALIASES.get(direction.upper(), direction.upper())
        if target not in DIRECTIONS or target == current:
            return False
        result = mutator.set_layout_direction(self._source, target)
        return self._apply_edit(result, LayoutChange(current, target))

    def toggle_direction(self) -> bool:
        """Advance the layout direction one step through the toolbar cycle."""
        current = self.direction
        if current is None:
            return False
        return self.set_direction(mutator.next_direction(current))

    # ─────────────────────────────────────────────────────────
    # Selection
    # ─────────────────────────────────────────────────────────

    def _selection_updated(self):
        marked = apply_highlights(self.selection, self.tables)
        trace(f"Selection {self.selection.ids} ({marked} highlighted)", "SELECT")
        self.selection_changed.emit(self.selection.ids)

    def set_selection_mode(self, enabled: bool):
        self.selection_mode = enabled
        if not enabled and len(self.selection):
            self.selection.clear()
            self._selection_updated()

    def click(self, logical_id: Optional[str]) -> bool:
        """Handle a click in selection mode.

        A logical id toggles that element; ``None`` (empty canvas) clears.

        Returns:
            True if the selection changed.
        """
        if not self.selection_mode:
            return False
        if logical_id is None:
            if not len(self.selection):
                return False
            self.selection.clear()
        else:
            self.selection.toggle(logical_id)
        self._selection_updated()
        return True

    def click_element(self, el: Optional[ET.Element]) -> bool:
        """Route a click on a rendered element through the identity tables.

        Nodes and edges toggle; edge labels are left to rename; anything
        else counts as the empty canvas.
        """
        kind, logical_id = find_owner(self.tables, el) if el is not None else (None, None)
        if kind == "edgeLabel":
            return False
        return self.click(logical_id)

    def marquee(self, gesture: MarqueeGesture, merge: bool = False) -> List[str]:
        """Box-select nodes whose bounds intersect the gesture rectangle.

        Returns:
            Ids hit by the marquee (empty for a sub-threshold drag).
        """
        if not self.selection_mode:
            return []
        if not gesture.exceeds_threshold(self.settings.selection.marquee_threshold):
            return []
        hits = hit_test(self.tables.node_bounds, gesture.rect())
        before = self.selection.ids
        self.selection.set_from_marquee(hits, merge=merge)
        if self.selection.ids != before:
            self._selection_updated()
        return hits

    def clear_selection(self):
        if len(self.selection):
            self.selection.clear()
            self._selection_updated()

    # ─────────────────────────────────────────────────────────
    # Rendering
    # ─────────────────────────────────────────────────────────

    def begin_render(self) -> int:
        """Open a new render generation; earlier results become stale."""
        self._generation += 1
        return self._generation

    def request_render(self) -> int:
        """Render the current source on a background thread."""
        generation = self.begin_render()
        trace(f"Render {generation} requested ({self._family})", "RENDER")

        thread = QThread()
        worker = RenderWorker(generation, self._source, self._family, render=self._render)
        worker.moveToThread(thread)
        pair = (thread, worker)
        self._active.add(pair)

        thread.started.connect(worker.run)
        worker.finished.connect(self.on_render_finished)
        worker.failed.connect(self.on_render_failed)

        worker.finished.connect(thread.quit)
        worker.failed.connect(thread.quit)

        def _release():
            self._active.discard(pair)

        thread.finished.connect(_release)
        thread.finished.connect(thread.deleteLater)

        thread.start()
        return generation

    def on_render_finished(self, generation: int, root: ET.Element):
        if generation != self._generation:
            trace(f"Discarding stale render {generation} (current {self._generation})", "RENDER")
            return
        tables = resolve(root)
        inject_selection_styles(root, self.settings.selection.highlight_color)
        self.tables = tables
        self.last_error = None
        self._error_timer.stop()
        self._errors.reset()
        apply_highlights(self.selection, self.tables)
        trace(f"Render {generation}: {len(tables.nodes)} nodes, {len(tables.edges)} edges, "
              f"{len(tables.edge_labels)} edge labels", "RENDER")
        self.render_error.emit(None)

    def on_render_failed(self, generation: int, message: str):
        if generation != self._generation:
            trace(f"Discarding stale failure {generation} (current {self._generation})", "RENDER")
            return
        self.last_error = message
        self.render_error.emit(message)
        if self._tool_supplied:
            self._errors.record_error(message, self._source)
            self._error_timer.start()

    def flush_error_report(self):
        report = self._errors.take_report(self._tool_supplied)
        if report is not None:
            trace("Sending auto-fix report", "SYNC")
            self.error_report_ready.emit(report)

    # ─────────────────────────────────────────────────────────
    # Downstream
    # ─────────────────────────────────────────────────────────

    def agent_payload(self) -> AgentPayload:
        return AgentPayload(
            changes=self.change_log.serialize(),
            source=self._source,
            selection=self.selection.ids,
            family=self._family,
        )

    def send_to_agent(self) -> AgentPayload:
        """Build the payload and flush the change log."""
        payload = self.agent_payload()
        trace(f"Sending {len(self.change_log)} change(s)", "SYNC")
        self.change_log.clear()
        return payload
