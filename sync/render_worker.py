"""
sync/render_worker.py

Background worker for Mermaid rendering.
Runs mmdc in a separate thread to avoid blocking the UI; every result is
tagged with the render generation it was started for.
"""

from __future__ import annotations

import traceback
from typing import Callable, Optional

from PyQt6.QtCore import QObject, pyqtSignal

from debug_trace import trace, trace_exception
from mermaid.renderer import RenderError, render_source


class RenderWorker(QObject):
    """
    Background worker that renders one source snapshot.

    Signals:
        finished(int, object): Emitted with generation and SVG root on success
        failed(int, str): Emitted with generation and diagnostic on failure
    """

    finished = pyqtSignal(int, object)
    failed = pyqtSignal(int, str)

    def __init__(self, generation: int, source: str, family_hint: str,
                 render: Optional[Callable] = None):
        """
        Initialize the render worker.

        Args:
            generation: Render generation this snapshot belongs to
            source: Mermaid source text
            family_hint: Diagram family from the classifier
            render: Render function, ``render_source`` unless overridden
        """
        super().__init__()
        self.generation = generation
        self.source = source
        self.family_hint = family_hint
        self._render = render or render_source

    def run(self):
        """Execute the render."""
        try:
            root = self._render(self.source, self.family_hint)
            self.finished.emit(self.generation, root)
        except RenderError as e:
            trace(f"Render {self.generation} failed: {e.message}", "RENDER")
            self.failed.emit(self.generation, e.message)
        except Exception as e:
            trace_exception(f"Render {self.generation} crashed")
            msg = f"{e}\n\n{traceback.format_exc()}"
            self.failed.emit(self.generation, msg)
