"""
tests/conftest.py

Shared fixtures: a session QApplication, isolated settings and a small
Mermaid-style flowchart SVG.
"""

from __future__ import annotations

import sys
import xml.etree.ElementTree as ET

import pytest
from PyQt6.QtCore import QCoreApplication

from settings import AppSettings


FLOWCHART_SOURCE = """graph TD
  A([Start]) --> B[Process Data]
  B --> C{Decision}
  C -->|Yes| D[Action A]
  C -->|No| E[Action B]"""

# Trimmed-down mmdc v11 output for FLOWCHART_SOURCE
FLOWCHART_SVG = """<svg xmlns="http://www.w3.org/2000/svg" id="my-svg" aria-roledescription="flowchart-v2" viewBox="0 0 400 500">
  <style>#my-svg{font-family:sans-serif;}</style>
  <g>
    <g class="root">
      <g class="edgePaths">
        <path id="L_A_B_0" class="edge-thickness-normal flowchart-link" d="M10,10L10,20"/>
        <path id="L_B_C_0" class="edge-thickness-normal flowchart-link" d="M10,30L10,40"/>
        <path id="L_C_D_0" class="edge-thickness-normal flowchart-link" d="M10,50L10,60"/>
        <path id="L_C_E_0" class="edge-thickness-normal flowchart-link" d="M10,50L30,60"/>
        <path class="flowchart-link" d="M0,0L1,1"/>
      </g>
      <g class="edgeLabels">
        <g class="edgeLabel"><g class="label" transform="translate(0, 0)"><foreignObject width="0" height="0"><div xmlns="http://www.w3.org/1999/xhtml"><span class="edgeLabel"></span></div></foreignObject></g></g>
        <g class="edgeLabel" transform="translate(120, 300)"><g class="label" transform="translate(-10, -12)"><foreignObject width="20" height="24"><div xmlns="http://www.w3.org/1999/xhtml"><span class="edgeLabel"><p>Yes</p></span></div></foreignObject></g></g>
        <g class="edgeLabel" transform="translate(280, 300)"><g class="label"><text><tspan>No</tspan></text></g></g>
      </g>
      <g class="nodes">
        <g class="node default" id="flowchart-A-0" transform="translate(200, 40)">
          <rect class="basic label-container" x="-40" y="-20" width="80" height="40"/>
          <g class="label"><foreignObject width="40" height="24"><div xmlns="http://www.w3.org/1999/xhtml"><span class="nodeLabel"><p>Start</p></span></div></foreignObject></g>
        </g>
        <g class="node default" id="flowchart-B-1" transform="translate(200, 140)">
          <rect class="basic label-container" x="-60" y="-20" width="120" height="40"/>
          <g class="label"><foreignObject width="100" height="24"><div xmlns="http://www.w3.org/1999/xhtml"><span class="nodeLabel"><p>Process Data</p></span></div></foreignObject></g>
        </g>
        <g class="node default" id="flowchart-C-3" transform="translate(200, 240)">
          <polygon points="40,0 80,-40 40,-80 0,-40" class="label-container" transform="translate(-40,40)"/>
          <g class="label"><foreignObject width="60" height="24"><div xmlns="http://www.w3.org/1999/xhtml"><span class="nodeLabel"><p>Decision</p></span></div></foreignObject></g>
        </g>
        <g class="node default" id="flowchart-D-5" transform="translate(100, 400)">
          <rect x="-50" y="-20" width="100" height="40"/>
          <g class="label"><text>Action A</text></g>
        </g>
        <g class="node default" id="flowchart-E-7" transform="translate(300, 400)">
          <rect x="-50" y="-20" width="100" height="40"/>
          <g class="label"><text>Action B</text></g>
        </g>
        <g class="node decoration"><rect width="5" height="5"/></g>
      </g>
    </g>
  </g>
</svg>"""


@pytest.fixture(scope="session")
def qapp():
    """Provide a single Qt application for the entire test session."""
    app = QCoreApplication.instance() or QCoreApplication(sys.argv)
    yield app


@pytest.fixture()
def app_settings():
    """Default settings, detached from the user's settings file."""
    return AppSettings()


@pytest.fixture()
def flowchart_source():
    return FLOWCHART_SOURCE


@pytest.fixture()
def flowchart_svg():
    """A fresh parsed copy of FLOWCHART_SVG (trees are mutated by highlights)."""
    return ET.fromstring(FLOWCHART_SVG)
