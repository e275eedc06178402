"""Query the macOS IO registry through ``ioreg -a``.

``ioreg -a`` prints a property list. It is parsed into a plain tree of
dicts, lists and scalars; values are reached with explicit lookups instead of
attribute magic::

    tree = ioreg("PerformanceStatistics")
    query(tree, "PerformanceStatistics/Device Utilization %")
"""

from __future__ import annotations

import plistlib
import subprocess
from collections.abc import Iterator
from datetime import datetime
from typing import Union

PlistValue = Union[
    str, int, float, bool, bytes, datetime, list["PlistValue"], dict[str, "PlistValue"]
]


def run_ioreg(key: str) -> bytes | None:
    """Raw plist output of ``ioreg`` for every service carrying *key*."""
    try:
        result = subprocess.run(
            ["ioreg", "-a", "-p", "IOService", "-r", "-k", key],
            capture_output=True,
            timeout=5,
        )
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0 or not result.stdout.strip():
        return None
    return result.stdout


def parse_plist(data: bytes) -> PlistValue | None:
    try:
        return plistlib.loads(data)
    except (plistlib.InvalidFileException, ValueError):
        return None


def deep_find_all(tree: PlistValue, key: str) -> Iterator[PlistValue]:
    """Yield the value of every *key* in nested dicts, depth first."""
    if isinstance(tree, dict):
        for k, v in tree.items():
            if k == key:
                yield v
            yield from deep_find_all(v, key)
    elif isinstance(tree, list):
        for item in tree:
            yield from deep_find_all(item, key)


def query(tree: PlistValue | None, path: str, sep: str = "/") -> PlistValue | None:
    """Follow *path* through dict keys and list indices; None if missing."""
    node = tree
    for part in path.split(sep):
        if isinstance(node, dict):
            if part not in node:
                return None
            node = node[part]
        elif isinstance(node, list) and part.isdigit() and int(part) < len(node):
            node = node[int(part)]
        else:
            return None
    return node


def ioreg(key: str) -> dict[str, PlistValue] | None:
    """The largest *key* dictionary found in the IO registry, if any."""
    data = run_ioreg(key)
    if data is None:
        return None
    tree = parse_plist(data)
    found = [v for v in deep_find_all(tree, key) if isinstance(v, dict)]
    if not found:
        return None
    return {key: max(found, key=len)}
