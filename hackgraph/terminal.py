"""Terminal escape sequences and size query used by the graph.

Cursor and screen control codes come from rich's Control so the sequences
match what rich itself emits; the SGR reset is written out directly.
"""

from __future__ import annotations

import os

from rich.control import Control

# ── Escape sequences ───────────────────────────────────────────────────────

RESET = "\033[0m"
CLEAR_SCREEN = str(Control.clear())
MOVE_HOME = str(Control.home())
SHOW_CURSOR = str(Control.show_cursor(True))
HIDE_CURSOR = str(Control.show_cursor(False))

DEFAULT_SIZE: tuple[int, int] = (24, 80)


def move_to(row: int, column: int) -> str:
    """Cursor move to a 1-indexed (row, column) position."""
    return str(Control.move_to(column - 1, row - 1))


def terminal_size() -> tuple[int, int]:
    """Return the terminal size as ``(lines, columns)``.

    Falls back to 24x80 when stdout is not attached to a terminal.
    """
    try:
        size = os.get_terminal_size()
    except OSError:
        return DEFAULT_SIZE
    return max(size.lines, 1), max(size.columns, 1)
