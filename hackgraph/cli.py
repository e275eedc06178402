"""Command line front end: graph one sample source in the terminal.

Usage:
    hackgraph cpu
    hackgraph memory --interval 2 --config path/to/config.toml
    hackgraph temperature --once --log-file /tmp/hackgraph.log --debug
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

from hackgraph.config import dump_default_config, load_config, source_settings
from hackgraph.errors import HackgraphError
from hackgraph.graph import Graph
from hackgraph.sources import SOURCES


def _configure_logging(log_file: Path | None, debug: bool) -> None:
    # The graph owns the terminal, so logs only ever go to a file.
    if log_file is None:
        return
    logging.basicConfig(
        filename=log_file,
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_graph(args: argparse.Namespace, config: dict[str, Any]) -> Graph:
    """Combine source defaults, config file settings and CLI options."""
    source = SOURCES[args.source]
    settings = source_settings(config, args.source)
    interval = args.interval if args.interval is not None else config["interval"]
    return Graph(
        title=args.title or settings.get("title", source.title),
        value=source.make(),
        format_value=args.format or settings.get("format", source.format),
        interval=float(interval),
        ticks=1 if args.once else None,
        color=args.color or settings.get("color"),
        color_secondary=args.color_secondary or settings.get("color_secondary"),
        adjust_brightness=config["adjust_brightness"],
        adjust_brightness_percentage=config["adjust_brightness_percentage"],
        foreground_color=config["foreground_color"],
        background_color=config["background_color"],
    )


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Live terminal graph of a system metric.",
    )
    parser.add_argument(
        "source",
        nargs="?",
        choices=sorted(SOURCES),
        help="Metric to graph",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between samples, 0 for no delay (default: from config, 1.0)",
    )
    parser.add_argument(
        "--once", action="store_true",
        help="Draw a single tick and exit",
    )
    parser.add_argument("--title", default=None, help="Graph title")
    parser.add_argument(
        "--format",
        default=None,
        metavar="NAME",
        help="Value formatter: bytes, hertz, celsius, percent or default",
    )
    parser.add_argument("--color", default=None, help="Primary bar color")
    parser.add_argument(
        "--color-secondary", default=None,
        help="Bar body color (default: primary color lightened)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        metavar="PATH",
        help="Path to TOML config file",
    )
    parser.add_argument(
        "--log-file", type=Path, default=None, metavar="PATH",
        help="Write log messages to this file",
    )
    parser.add_argument("--debug", action="store_true", help="Log at DEBUG level")
    parser.add_argument(
        "--dump-config", action="store_true",
        help="Print the default configuration as TOML and exit",
    )
    parser.add_argument(
        "--list", action="store_true",
        help="List the available sources and exit",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = _parser()
    args = parser.parse_args(argv)

    if args.dump_config:
        print(dump_default_config(), end="")
        return
    if args.list:
        for name in sorted(SOURCES):
            source = SOURCES[name]
            print(f"{name:12s}  {source.title} ({source.format})")
        return
    if args.source is None:
        parser.error("a source is required")

    _configure_logging(args.log_file, args.debug)
    config = load_config(args.config)
    try:
        graph = build_graph(args, config)
        graph.colors()
    except (HackgraphError, ValueError) as e:
        print(f"hackgraph: {e}", file=sys.stderr)
        raise SystemExit(2) from e

    try:
        graph.start()
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
