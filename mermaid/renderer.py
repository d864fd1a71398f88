"""
mermaid/renderer.py

Render Mermaid source text to an SVG element tree using the Mermaid CLI
(``mmdc``).

The renderer is treated as a black box: source text in, a parsed ``<svg>``
tree out, or a ``RenderError`` carrying a human-readable diagnostic.  All
intermediate files live in a private temporary directory that is removed
after every attempt, whether it succeeded or not, so failed renders never
leave artifacts behind.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import tempfile
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import List

from debug_trace import trace, trace_call

# Register namespaces so ET.tostring() doesn't mangle them with ns0/ns1 prefixes
ET.register_namespace("", "http://www.w3.org/2000/svg")
ET.register_namespace("xlink", "http://www.w3.org/1999/xlink")

# Classes Mermaid puts on its "bomb" error diagram
_ERROR_CLASSES = {"error-icon", "error-text"}


class RenderError(RuntimeError):
    """The renderer produced a diagnostic instead of a diagram."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def find_mmdc() -> str | None:
    """Find the Mermaid CLI (mmdc) executable.

    Search order:
        1. Settings (external_tools.mmdc_path)
        2. MMDC_PATH environment variable
        3. mmdc on system PATH

    Returns:
        Path to mmdc executable if found, None otherwise.
    """
    from settings import get_settings

    configured = get_settings().settings.external_tools.mmdc_path
    if configured and os.path.isfile(configured):
        return configured

    env_path = os.environ.get("MMDC_PATH")
    if env_path and os.path.isfile(env_path):
        return env_path

    return shutil.which("mmdc")


def _is_error_element(el: ET.Element) -> bool:
    if el.get("aria-roledescription") == "error":
        return True
    return bool(_ERROR_CLASSES.intersection(el.get("class", "").split()))


def strip_error_artifacts(root: ET.Element) -> int:
    """Remove leftover error icons/text and nested error SVGs from *root*.

    Returns:
        Number of elements removed.
    """
    removed = 0
    for parent in list(root.iter()):
        for child in list(parent):
            if _is_error_element(child):
                parent.remove(child)
                removed += 1
    return removed


def _error_text(root: ET.Element) -> str:
    texts: List[str] = []
    for el in root.iter():
        if "error-text" in el.get("class", "").split():
            content = "".join(el.itertext()).strip()
            if content:
                texts.append(content)
    return " ".join(texts) or "Syntax error in text"


def parse_svg(svg_text: str) -> ET.Element:
    """Parse rendered SVG markup into a tree, rejecting error diagrams.

    Raises:
        RenderError: If the markup is not XML or is Mermaid's error diagram.
    """
    try:
        root = ET.fromstring(svg_text)
    except ET.ParseError as e:
        raise RenderError(f"Renderer produced unreadable SVG: {e}") from e

    if root.get("aria-roledescription") == "error":
        raise RenderError(_error_text(root))

    removed = strip_error_artifacts(root)
    if removed:
        trace(f"Removed {removed} leftover error element(s)", "RENDER")
    return root


@trace_call("RENDER")
def render_source(source: str, family_hint: str = "unknown") -> ET.Element:
    """Render Mermaid *source* to an SVG element tree.

    Args:
        source: Mermaid source text.
        family_hint: Diagram family from the classifier, used for tracing.

    Returns:
        Root ``<svg>`` element of the rendered diagram.

    Raises:
        RenderError: If mmdc cannot be found, fails, times out, or produces
            no usable SVG.
    """
    if not source.strip():
        raise RenderError("Diagram source is empty.")

    mmdc = find_mmdc()
    if mmdc is None:
        raise RenderError(
            "Mermaid CLI (mmdc) not found.\n\n"
            "Install with:  npm install -g @mermaid-js/mermaid-cli\n\n"
            "Or set the MMDC_PATH environment variable to the mmdc executable."
        )

    from settings import get_settings
    timeout = get_settings().settings.external_tools.render_timeout

    tmp_dir = tempfile.mkdtemp(prefix="mermaidsync_")
    try:
        input_path = Path(tmp_dir) / "input.mmd"
        output_path = Path(tmp_dir) / "output.svg"
        input_path.write_text(source, encoding="utf-8")

        cmd = [mmdc, "-i", str(input_path), "-o", str(output_path)]
        trace(f"mmdc command ({family_hint}): {' '.join(cmd)}", "MMDC")

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise RenderError(f"mmdc timed out after {timeout}s") from e
        except OSError as e:
            raise RenderError(f"mmdc could not be started: {e}") from e

        if result.returncode != 0:
            raise RenderError(
                result.stderr.strip()
                or f"mmdc rendering failed (exit {result.returncode})"
            )

        if not output_path.is_file():
            raise RenderError(
                "mmdc ran successfully but produced no SVG output.\n"
                f"stdout: {result.stdout.strip()}\n"
                f"stderr: {result.stderr.strip()}"
            )

        return parse_svg(output_path.read_text(encoding="utf-8"))
    finally:
        shutil.rmtree(tmp_dir, ignore_errors=True)


def svg_to_string(root: ET.Element) -> str:
    """Serialise a (possibly highlighted) SVG tree back to markup."""
    return ET.tostring(root, encoding="unicode")
