"""
tests/test_renderer.py

Mermaid CLI boundary with mmdc replaced by a fake subprocess: success,
diagnostics, error diagrams, timeouts and temp-directory cleanup.
"""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

import settings
from mermaid import renderer
from mermaid.renderer import RenderError, parse_svg, render_source, strip_error_artifacts

from conftest import FLOWCHART_SVG

ERROR_SVG = (
    '<svg xmlns="http://www.w3.org/2000/svg" aria-roledescription="error">'
    '<g><path class="error-icon" d="M0 0"/>'
    '<text class="error-text">Syntax error in text</text>'
    '<text class="error-text">mermaid version 11.4.0</text></g></svg>'
)


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "_settings_manager", settings.SettingsManager(settings_dir=tmp_path))
    monkeypatch.delenv("MMDC_PATH", raising=False)


class _FakeMmdc:
    """Stands in for subprocess.run; writes *svg* to the -o path."""

    def __init__(self, svg=FLOWCHART_SVG, returncode=0, stderr="", write=True):
        self.svg = svg
        self.returncode = returncode
        self.stderr = stderr
        self.write = write
        self.cmd = None
        self.timeout = None

    def __call__(self, cmd, capture_output, text, timeout):
        self.cmd = cmd
        self.timeout = timeout
        assert Path(cmd[2]).read_text(encoding="utf-8")
        if self.write:
            Path(cmd[4]).write_text(self.svg, encoding="utf-8")
        return subprocess.CompletedProcess(cmd, self.returncode, stdout="", stderr=self.stderr)

    @property
    def tmp_dir(self) -> Path:
        return Path(self.cmd[2]).parent


@pytest.fixture()
def fake_mmdc(monkeypatch):
    def install(**kwargs):
        fake = _FakeMmdc(**kwargs)
        monkeypatch.setattr(renderer, "find_mmdc", lambda: "/usr/bin/mmdc")
        monkeypatch.setattr(renderer.subprocess, "run", fake)
        return fake
    return install


# ─────────────────────────────────────────────────────────
# find_mmdc
# ─────────────────────────────────────────────────────────


class TestFindMmdc:
    def test_settings_path_first(self, tmp_path, monkeypatch):
        exe = tmp_path / "mmdc"
        exe.write_text("")
        settings.get_settings().settings.external_tools.mmdc_path = str(exe)
        assert renderer.find_mmdc() == str(exe)

    def test_env_var(self, tmp_path, monkeypatch):
        exe = tmp_path / "mmdc-env"
        exe.write_text("")
        monkeypatch.setenv("MMDC_PATH", str(exe))
        assert renderer.find_mmdc() == str(exe)

    def test_path_lookup(self, monkeypatch):
        monkeypatch.setattr(renderer.shutil, "which", lambda name: f"/found/{name}")
        assert renderer.find_mmdc() == "/found/mmdc"


# ─────────────────────────────────────────────────────────
# render_source
# ─────────────────────────────────────────────────────────


class TestRenderSource:
    def test_success(self, fake_mmdc):
        fake = fake_mmdc()
        root = render_source("graph TD\n  A --> B", "flowchart")
        assert root.get("aria-roledescription") == "flowchart-v2"
        assert fake.cmd[1] == "-i" and fake.cmd[3] == "-o"
        assert fake.timeout == 60

    def test_temp_dir_removed_after_success(self, fake_mmdc):
        fake = fake_mmdc()
        render_source("graph TD\n  A --> B")
        assert not fake.tmp_dir.exists()

    def test_temp_dir_removed_after_failure(self, fake_mmdc):
        fake = fake_mmdc(returncode=1, stderr="Parse error on line 2", write=False)
        with pytest.raises(RenderError):
            render_source("graph TD\n  A -->")
        assert not fake.tmp_dir.exists()

    def test_nonzero_exit_uses_stderr(self, fake_mmdc):
        fake_mmdc(returncode=1, stderr="Parse error on line 2:\n...A -->\n", write=False)
        with pytest.raises(RenderError) as exc:
            render_source("graph TD\n  A -->")
        assert exc.value.message.startswith("Parse error on line 2")

    def test_nonzero_exit_without_stderr(self, fake_mmdc):
        fake_mmdc(returncode=3, write=False)
        with pytest.raises(RenderError, match="exit 3"):
            render_source("graph TD")

    def test_missing_output(self, fake_mmdc):
        fake_mmdc(write=False)
        with pytest.raises(RenderError, match="no SVG output"):
            render_source("graph TD")

    def test_error_diagram(self, fake_mmdc):
        fake_mmdc(svg=ERROR_SVG)
        with pytest.raises(RenderError) as exc:
            render_source("graph TD\n  A -->")
        assert "Syntax error in text" in exc.value.message

    def test_timeout(self, monkeypatch):
        def slow(cmd, **kwargs):
            raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])
        monkeypatch.setattr(renderer, "find_mmdc", lambda: "/usr/bin/mmdc")
        monkeypatch.setattr(renderer.subprocess, "run", slow)
        with pytest.raises(RenderError, match="timed out"):
            render_source("graph TD")

    def test_mmdc_not_found(self, monkeypatch):
        monkeypatch.setattr(renderer, "find_mmdc", lambda: None)
        with pytest.raises(RenderError, match="not found"):
            render_source("graph TD")

    def test_empty_source(self):
        with pytest.raises(RenderError, match="empty"):
            render_source("   \n")


# ─────────────────────────────────────────────────────────
# SVG parsing
# ─────────────────────────────────────────────────────────


class TestParseSvg:
    def test_unreadable(self):
        with pytest.raises(RenderError, match="unreadable"):
            parse_svg("<svg")

    def test_leftover_error_artifacts_stripped(self):
        root = parse_svg(
            '<svg xmlns="http://www.w3.org/2000/svg"><g class="node" id="flowchart-A-0"/>'
            '<svg aria-roledescription="error"><text class="error-text">x</text></svg>'
            '<g><path class="error-icon"/></g></svg>'
        )
        assert [el for el in root.iter() if el.get("class") in ("error-icon", "error-text")] == []
        assert len(list(root.iter())) == 3

    def test_strip_count(self):
        root = parse_svg(FLOWCHART_SVG)
        assert strip_error_artifacts(root) == 0
