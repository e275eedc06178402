"""Configuration loading for hackgraph.

Loads settings from TOML config files with sensible defaults.
Search order: explicit --config path → ~/.config/hackgraph/config.toml → defaults only.
"""

from __future__ import annotations

import copy
import sys
import tomllib
from pathlib import Path
from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "interval": 1.0,
    "foreground_color": "white",
    "background_color": "black",
    "adjust_brightness": "lighten",
    "adjust_brightness_percentage": 15,
    "sources": {
        "cpu": {"title": "CPU", "format": "percent"},
        "memory": {"title": "Memory", "format": "bytes"},
        "swap": {"title": "Swap", "format": "bytes"},
        "temperature": {"title": "Temperature", "format": "celsius"},
        "frequency": {"title": "Frequency", "format": "hertz"},
        "net_rx": {"title": "Net RX", "format": "bytes"},
        "net_tx": {"title": "Net TX", "format": "bytes"},
        "gpu": {"title": "GPU", "format": "percent"},
    },
}

_DEFAULT_PATH = Path.home() / ".config" / "hackgraph" / "config.toml"


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Merge overlay into base. Nested dicts are merged at the first level only."""
    merged = copy.deepcopy(base)
    for key, value in overlay.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = {**merged[key], **value}
        else:
            merged[key] = value
    return merged


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load configuration, merging user TOML over defaults.

    Args:
        path: Explicit config file path (from --config). If None, tries the
              default location ~/.config/hackgraph/config.toml.

    Returns:
        Merged configuration dict.

    Raises:
        SystemExit: If an explicit path doesn't exist or can't be parsed.
    """
    if path is not None:
        if not path.is_file():
            print(f"hackgraph: config file not found: {path}", file=sys.stderr)
            raise SystemExit(1)
        try:
            user_config = tomllib.loads(path.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as e:
            print(f"hackgraph: invalid TOML in {path}: {e}", file=sys.stderr)
            raise SystemExit(1) from e
        return _deep_merge(DEFAULT_CONFIG, user_config)

    if _DEFAULT_PATH.is_file():
        try:
            user_config = tomllib.loads(_DEFAULT_PATH.read_text(encoding="utf-8"))
            return _deep_merge(DEFAULT_CONFIG, user_config)
        except tomllib.TOMLDecodeError:
            print(
                f"hackgraph: warning: ignoring invalid TOML in {_DEFAULT_PATH}",
                file=sys.stderr,
            )

    return copy.deepcopy(DEFAULT_CONFIG)


def source_settings(config: dict[str, Any], name: str) -> dict[str, Any]:
    """Settings of one ``[sources.NAME]`` table, empty if there is none."""
    sources: dict[str, Any] = config.get("sources", {})
    return dict(sources.get(name, {}))


def dump_default_config() -> str:
    """Return the default configuration as a TOML string."""
    lines = [
        "# hackgraph configuration",
        "# Place this file at ~/.config/hackgraph/config.toml",
        "",
        f"interval = {DEFAULT_CONFIG['interval']}",
        f'foreground_color = "{DEFAULT_CONFIG["foreground_color"]}"',
        f'background_color = "{DEFAULT_CONFIG["background_color"]}"',
        f'adjust_brightness = "{DEFAULT_CONFIG["adjust_brightness"]}"',
        f"adjust_brightness_percentage = {DEFAULT_CONFIG['adjust_brightness_percentage']}",
        "",
    ]

    # Sources; color and color_secondary are derived from the title unless set
    for name, cfg in DEFAULT_CONFIG["sources"].items():
        lines.append(f"[sources.{name}]")
        lines.append(f'title = "{cfg["title"]}"')
        lines.append(f'format = "{cfg["format"]}"')
        lines.append('# color = "color(26)"')
        lines.append("")

    return "\n".join(lines) + "\n"
