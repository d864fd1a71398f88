"""
tests/test_identity.py

Identity resolution over rendered Mermaid SVG: node id normalisation,
edge filtering, edge label keys, label extraction and node bounds.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET

import pytest
from PyQt6.QtCore import QRectF

from mermaid.identity import (
    extract_edge_id,
    extract_edge_label_text,
    extract_node_label,
    find_owner,
    normalize_node_id,
    resolve,
)

_SVG = "http://www.w3.org/2000/svg"
_XHTML = "http://www.w3.org/1999/xhtml"


def _frag(markup: str) -> ET.Element:
    return ET.fromstring(
        f'<svg xmlns="{_SVG}" xmlns:x="{_XHTML}">{markup}</svg>'
    )[0]


# ─────────────────────────────────────────────────────────
# Normalisation
# ─────────────────────────────────────────────────────────


class TestNormalizeNodeId:
    @pytest.mark.parametrize("raw, logical", [
        ("flowchart-A-0", "A"),
        ("flowchart-Process_Data-12", "Process_Data"),
        ("flowchart-my-node-3", "my-node"),
        ("state-Idle-2", "Idle"),
        ("state-Running", "Running"),
        ("classId-Animal-1", "Animal"),
        ("classId-Duck", "Duck"),
        ("entity-CUSTOMER-0", "CUSTOMER"),
        ("root", "root"),
        ("A", "A"),
    ])
    def test_patterns(self, raw, logical):
        assert normalize_node_id(raw) == logical

    def test_same_entity_across_renders(self):
        assert normalize_node_id("flowchart-B-1") == normalize_node_id("flowchart-B-9")


class TestExtractEdgeId:
    @pytest.mark.parametrize("raw", ["L_A_B_0", "L-A-B-0", "edge3"])
    def test_recognised_prefixes(self, raw):
        el = ET.Element("path", {"id": raw})
        assert extract_edge_id(el) == raw

    def test_anonymous_edge(self):
        assert extract_edge_id(ET.Element("path")) is None
        assert extract_edge_id(ET.Element("path", {"id": "link-1"})) is None


# ─────────────────────────────────────────────────────────
# Label extraction
# ─────────────────────────────────────────────────────────


class TestLabels:
    def test_node_label_from_span(self):
        el = _frag(
            '<g class="node"><foreignObject><x:div>'
            '<x:span class="nodeLabel"><x:p>Process Data</x:p></x:span>'
            '</x:div></foreignObject></g>'
        )
        assert extract_node_label(el) == "Process Data"

    def test_node_label_joins_fragments(self):
        el = _frag(
            '<g class="node"><text><tspan>Multi</tspan></text>'
            '<text><tspan>Line</tspan></text></g>'
        )
        assert extract_node_label(el) == "Multi Line"

    def test_node_without_label(self):
        assert extract_node_label(_frag('<g class="node"><rect/></g>')) == ""

    def test_edge_label_span_first(self):
        el = _frag(
            '<g class="edgeLabel"><text>ignored</text><foreignObject><x:div>'
            '<x:span class="edgeLabel">Yes</x:span></x:div></foreignObject></g>'
        )
        assert extract_edge_label_text(el) == "Yes"

    def test_edge_label_nested_class(self):
        el = _frag('<g class="edgeLabel"><g class="edgeLabel label"><text>maybe</text></g></g>')
        assert extract_edge_label_text(el) == "maybe"

    def test_edge_label_text_runs(self):
        el = _frag('<g class="edgeLabel"><text>on</text><text>retry</text></g>')
        assert extract_edge_label_text(el) == "on retry"

    def test_empty_edge_label(self):
        assert extract_edge_label_text(_frag('<g class="edgeLabel"><rect/></g>')) == ""


# ─────────────────────────────────────────────────────────
# resolve
# ─────────────────────────────────────────────────────────


class TestResolve:
    def test_node_table(self, flowchart_svg):
        tables = resolve(flowchart_svg)
        assert list(tables.nodes) == ["A", "B", "C", "D", "E"]
        assert extract_node_label(tables.nodes["B"]) == "Process Data"
        assert tables.nodes["A"].get("id") == "flowchart-A-0"

    def test_nodes_without_id_are_skipped(self, flowchart_svg):
        tables = resolve(flowchart_svg)
        assert all(el.get("id") for el in tables.nodes.values())

    def test_edge_table_excludes_anonymous(self, flowchart_svg):
        tables = resolve(flowchart_svg)
        assert list(tables.edges) == ["L_A_B_0", "L_B_C_0", "L_C_D_0", "L_C_E_0"]

    def test_edge_labels_keyed_by_text(self, flowchart_svg):
        tables = resolve(flowchart_svg)
        assert sorted(tables.edge_labels) == ["No", "Yes"]

    def test_duplicate_edge_label_last_wins(self):
        root = ET.fromstring(
            f'<svg xmlns="{_SVG}">'
            '<g class="edgeLabel" id="first"><text>same</text></g>'
            '<g class="edgeLabel" id="second"><text>same</text></g>'
            '</svg>'
        )
        tables = resolve(root)
        assert list(tables.edge_labels) == ["same"]
        assert tables.edge_labels["same"].get("id") == "second"

    def test_group_edges(self):
        root = ET.fromstring(
            f'<svg xmlns="{_SVG}">'
            '<g class="edgePath" id="L-A-B-0"><path/></g>'
            '<g class="edge" id="edge7"><path/></g>'
            '<g class="edge"><path/></g>'
            '</svg>'
        )
        assert list(resolve(root).edges) == ["L-A-B-0", "edge7"]

    def test_state_and_class_ids(self):
        root = ET.fromstring(
            f'<svg xmlns="{_SVG}">'
            '<g class="node statediagram-state" id="state-Idle-2"><rect width="10" height="10"/></g>'
            '<g class="node" id="classId-Animal-0"><rect width="10" height="10"/></g>'
            '</svg>'
        )
        assert list(resolve(root).nodes) == ["Idle", "Animal"]

    def test_node_bounds_accumulate_translate(self, flowchart_svg):
        bounds = resolve(flowchart_svg).node_bounds
        assert bounds["A"] == QRectF(160, 20, 80, 40)
        assert bounds["B"] == QRectF(140, 120, 120, 40)
        assert bounds["C"] == QRectF(160, 200, 80, 80)
        assert bounds["E"] == QRectF(250, 380, 100, 40)

    def test_nested_translate(self):
        root = ET.fromstring(
            f'<svg xmlns="{_SVG}"><g transform="translate(10, 20)">'
            '<g class="node" id="flowchart-X-0" transform="translate(5 5)">'
            '<circle cx="0" cy="0" r="10"/></g></g></svg>'
        )
        assert resolve(root).node_bounds["X"] == QRectF(5, 15, 20, 20)

    def test_tables_are_fresh_per_call(self, flowchart_svg):
        first = resolve(flowchart_svg)
        second = resolve(flowchart_svg)
        assert first.nodes is not second.nodes
        assert second.root is flowchart_svg

    def test_empty_tree(self):
        tables = resolve(ET.fromstring(f'<svg xmlns="{_SVG}"/>'))
        assert tables.is_empty()
        assert tables.node_bounds == {}


class TestFindOwner:
    def test_label_span_resolves_to_node(self, flowchart_svg):
        tables = resolve(flowchart_svg)
        span = next(el for el in tables.nodes["B"].iter() if el.get("class") == "nodeLabel")
        assert find_owner(tables, span) == ("node", "B")

    def test_edge_path(self, flowchart_svg):
        tables = resolve(flowchart_svg)
        assert find_owner(tables, tables.edges["L_C_D_0"]) == ("edge", "L_C_D_0")

    def test_edge_label(self, flowchart_svg):
        tables = resolve(flowchart_svg)
        inner = next(iter(tables.edge_labels["Yes"]))
        assert find_owner(tables, inner) == ("edgeLabel", "Yes")

    def test_background(self, flowchart_svg):
        tables = resolve(flowchart_svg)
        assert find_owner(tables, flowchart_svg) == (None, None)
