"""
settings.py

Persistent settings management for MermaidSync.

Handles cross-platform settings storage using TOML format with platformdirs
for proper user config directory detection.

Settings file location:
    - Windows: %APPDATA%/mermaidsync/settings.toml
    - macOS: ~/Library/Application Support/mermaidsync/settings.toml
    - Linux: ~/.config/mermaidsync/settings.toml

Default values are documented in comments throughout this file.
If settings.toml is corrupted, these defaults will be used.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import platformdirs

# TOML reading - use tomllib for Python 3.11+, tomli for earlier versions
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import tomli_w

APP_NAME = "mermaidsync"

# Global settings manager instance (singleton)
_settings_manager: Optional["SettingsManager"] = None


def get_settings() -> "SettingsManager":
    """Get the global settings manager instance.

    Returns:
        The singleton SettingsManager instance.
    """
    global _settings_manager
    if _settings_manager is None:
        _settings_manager = SettingsManager()
    return _settings_manager


# =============================================================================
# External Tools Settings
# =============================================================================

@dataclass
class ExternalToolSettings:
    """Mermaid CLI settings.

    Defaults:
        mmdc_path: ""
        render_timeout: 60
    """
    mmdc_path: str = ""        # Default: "" (search MMDC_PATH, then PATH)
    render_timeout: int = 60   # Default: 60 seconds


# =============================================================================
# Selection Settings
# =============================================================================

@dataclass
class SelectionSettings:
    """Selection and marquee settings.

    Defaults:
        marquee_threshold: 5.0
        highlight_color: "#3b82f6"
    """
    marquee_threshold: float = 5.0      # Default: 5.0 units on both axes
    highlight_color: str = "#3b82f6"    # Default: blue


# =============================================================================
# Sync Settings
# =============================================================================

@dataclass
class SyncSettings:
    """Agent synchronisation settings.

    Defaults:
        error_fix_delay_ms: 3000
        error_code_prefix: 200
    """
    error_fix_delay_ms: int = 3000   # Default: 3000 ms before an error report is sent
    error_code_prefix: int = 200     # Default: 200 chars of code used for dedupe


# =============================================================================
# Debug Settings
# =============================================================================

@dataclass
class DebugSettings:
    """Trace logging settings.

    Defaults:
        trace_enabled: False
        log_file: ""
    """
    trace_enabled: bool = False   # Default: False
    log_file: str = ""            # Default: "" (stderr only)


# =============================================================================
# Main App Settings
# =============================================================================

@dataclass
class AppSettings:
    """Application settings with default values.

    Attributes:
        external_tools: Mermaid CLI location and timeout.
        selection: Marquee threshold and highlight colour.
        sync: Error report debounce settings.
        debug: Trace logging settings.
    """
    external_tools: ExternalToolSettings = field(default_factory=ExternalToolSettings)
    selection: SelectionSettings = field(default_factory=SelectionSettings)
    sync: SyncSettings = field(default_factory=SyncSettings)
    debug: DebugSettings = field(default_factory=DebugSettings)


# =============================================================================
# Settings Manager
# =============================================================================

class SettingsManager:
    """Manages loading, saving, and accessing application settings.

    Settings are stored in a TOML file at the platform-appropriate location.
    If the settings file doesn't exist, defaults are used and the file is
    created on first save.

    Args:
        app_name: Application name used for the config directory.
        settings_dir: Optional explicit directory (tests, portable installs).
    """

    def __init__(self, app_name: str = APP_NAME, settings_dir: Optional[Path] = None):
        if settings_dir is None:
            settings_dir = Path(platformdirs.user_config_dir(app_name))
        self.settings_dir = Path(settings_dir)
        self.settings_file = self.settings_dir / "settings.toml"
        self.settings = self.load()

    def load(self) -> AppSettings:
        """Load settings from the TOML file.

        Returns:
            AppSettings instance with values from file or defaults if file
            doesn't exist or is invalid.
        """
        if not self.settings_file.exists():
            return AppSettings()

        try:
            with open(self.settings_file, "rb") as f:
                data = tomllib.load(f)

            return self._parse_toml(data)
        except Exception:
            # If file is corrupted or invalid, return defaults
            return AppSettings()

    def _parse_toml(self, data: Dict[str, Any]) -> AppSettings:
        """Parse TOML data into AppSettings.

        Args:
            data: Parsed TOML dictionary.

        Returns:
            AppSettings instance populated from TOML data.
        """
        settings = AppSettings()

        tools = data.get("external_tools", {})
        settings.external_tools.mmdc_path = tools.get("mmdc_path", settings.external_tools.mmdc_path)
        settings.external_tools.render_timeout = tools.get("render_timeout", settings.external_tools.render_timeout)

        sel = data.get("selection", {})
        settings.selection.marquee_threshold = sel.get("marquee_threshold", settings.selection.marquee_threshold)
        settings.selection.highlight_color = sel.get("highlight_color", settings.selection.highlight_color)

        sync = data.get("sync", {})
        settings.sync.error_fix_delay_ms = sync.get("error_fix_delay_ms", settings.sync.error_fix_delay_ms)
        settings.sync.error_code_prefix = sync.get("error_code_prefix", settings.sync.error_code_prefix)

        debug = data.get("debug", {})
        settings.debug.trace_enabled = debug.get("trace_enabled", settings.debug.trace_enabled)
        settings.debug.log_file = debug.get("log_file", settings.debug.log_file)

        return settings

    def save(self) -> None:
        """Save current settings to the TOML file.

        Creates the settings directory if it doesn't exist.
        """
        self.settings_dir.mkdir(parents=True, exist_ok=True)

        data = self._to_toml_dict()

        with open(self.settings_file, "wb") as f:
            tomli_w.dump(data, f)

    def _to_toml_dict(self) -> Dict[str, Any]:
        """Convert settings to a TOML-compatible dictionary structure.

        Returns:
            Dictionary organized by TOML sections.
        """
        s = self.settings
        return {
            "external_tools": {
                "mmdc_path": s.external_tools.mmdc_path,
                "render_timeout": s.external_tools.render_timeout,
            },
            "selection": {
                "marquee_threshold": s.selection.marquee_threshold,
                "highlight_color": s.selection.highlight_color,
            },
            "sync": {
                "error_fix_delay_ms": s.sync.error_fix_delay_ms,
                "error_code_prefix": s.sync.error_code_prefix,
            },
            "debug": {
                "trace_enabled": s.debug.trace_enabled,
                "log_file": s.debug.log_file,
            },
        }

    def to_toml(self) -> str:
        """Convert current settings to a TOML-formatted string.

        Returns:
            TOML representation of the current settings.
        """
        return tomli_w.dumps(self._to_toml_dict())

    def get_settings_path(self) -> Path:
        """Get the path to the settings file.

        Returns:
            Path object pointing to the settings file location.
        """
        return self.settings_file
