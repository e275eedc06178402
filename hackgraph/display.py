"""A fixed-size grid of colored cells with a cursor and a pen.

Writes go through a fluent API that moves the cursor and sets the pen
before putting characters::

    display = Display(24, 80)
    display.at(2, 1).color("red").styled("bold").write("CPU")

Two displays of the same size can be diffed; the diff renders only the cells
that changed, which is what the graph sends to the terminal every tick.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from rich.color import Color, ColorParseError
from wcwidth import wcwidth

from hackgraph import terminal
from hackgraph.cell import Cell
from hackgraph.errors import (
    DimensionMismatch,
    InvalidArgument,
    InvalidColor,
    InvalidDimensions,
    InvalidStyle,
    OutOfBounds,
)

# ── Styles ─────────────────────────────────────────────────────────────────

STYLES = frozenset(
    {
        "bold",
        "dim",
        "italic",
        "underline",
        "blink",
        "blink2",
        "reverse",
        "conceal",
        "strike",
        "underline2",
        "frame",
        "encircle",
        "overline",
    }
)

STYLE_ALIASES: dict[str, str] = {
    "faint": "dim",
    "dark": "dim",
    "underscore": "underline",
    "rapid_blink": "blink2",
    "negative": "reverse",
    "concealed": "conceal",
    "strikethrough": "strike",
}


def _style_name(style: str) -> str:
    name = STYLE_ALIASES.get(style, style)
    if name not in STYLES:
        raise InvalidStyle(f"{style!r} is not a style")
    return name


def color_name(color: str | int) -> str:
    """Validate a color identifier; palette indices become ``color(N)``."""
    if isinstance(color, int) and not isinstance(color, bool):
        if not 0 <= color <= 255:
            raise InvalidColor(f"{color!r} is not a palette index")
        return f"color({color})"
    if not isinstance(color, str):
        raise InvalidColor(f"{color!r} is not a color")
    try:
        Color.parse(color)
    except ColorParseError as e:
        raise InvalidColor(f"{color!r} is not a color") from e
    return color


# ── Diff ───────────────────────────────────────────────────────────────────


@dataclass
class DisplayDiff:
    """Changed cells between two displays, in row-major order."""

    changes: list[tuple[int, int, Cell]] = field(
        default_factory=lambda: list[tuple[int, int, Cell]]()
    )

    @property
    def positions(self) -> list[tuple[int, int]]:
        return [(row, column) for row, column, _ in self.changes]

    def render(self) -> str:
        return "".join(
            terminal.move_to(row, column) + cell.render()
            for row, column, cell in self.changes
        )

    def __len__(self) -> int:
        return len(self.changes)

    def __iter__(self) -> Iterator[tuple[int, int, Cell]]:
        return iter(self.changes)

    def __str__(self) -> str:
        return self.render()


# ── Display ────────────────────────────────────────────────────────────────


class Display:
    """Grid of ``lines`` x ``columns`` cells, addressed 1-indexed."""

    def __init__(
        self,
        lines: int,
        columns: int,
        color: str | int = "white",
        on_color: str | int = "black",
    ) -> None:
        if lines < 1 or columns < 1:
            raise InvalidDimensions(f"display needs positive size, got {lines}x{columns}")
        self._lines = lines
        self._columns = columns
        self._orig_color = color_name(color)
        self._orig_on_color = color_name(on_color)
        self._cells: list[list[Cell]] = []
        self.clear()

    # ── Dimensions and cursor ──────────────────────────────────────────────

    @property
    def lines(self) -> int:
        return self._lines

    @property
    def columns(self) -> int:
        return self._columns

    @property
    def dimensions(self) -> tuple[int, int]:
        return self._lines, self._columns

    @property
    def row(self) -> int:
        return self._row

    @property
    def column(self) -> int:
        return self._column

    def at(self, row: int, column: int) -> Display:
        """Move the cursor.

        Raises:
            OutOfBounds: If the position lies outside the grid.
        """
        if not 1 <= row <= self._lines:
            raise OutOfBounds(f"row {row} out of lines range 1..{self._lines}")
        if not 1 <= column <= self._columns:
            raise OutOfBounds(f"column {column} out of columns range 1..{self._columns}")
        self._row, self._column = row, column
        return self

    def top(self) -> Display:
        return self.at(1, self._column)

    def bottom(self) -> Display:
        return self.at(self._lines, self._column)

    def left(self) -> Display:
        return self.at(self._row, 1)

    def right(self) -> Display:
        return self.at(self._row, self._columns)

    def centered(self) -> Display:
        return self.at(max(self._lines // 2, 1), max(self._columns // 2, 1))

    # ── Pen ────────────────────────────────────────────────────────────────

    def color(self, color: str | int) -> Display:
        self._color = color_name(color)
        return self

    def on_color(self, color: str | int) -> Display:
        self._on_color = color_name(color)
        return self

    def styled(self, *styles: str) -> Display:
        """Replace the active style set."""
        self._styles = frozenset(_style_name(s) for s in styles)
        return self

    def reset(self) -> Display:
        """Restore the default pen; the grid is left alone."""
        self._color = self._orig_color
        self._on_color = self._orig_on_color
        self._styles: frozenset[str] = frozenset()
        return self

    def clear(self) -> Display:
        """Blank every cell and move the cursor home with the default pen."""
        self._row = 1
        self._column = 1
        self.reset()
        blank = Cell(" ", self._color, self._on_color, self._styles)
        self._cells = [[blank] * self._columns for _ in range(self._lines)]
        return self

    # ── Writing ────────────────────────────────────────────────────────────

    def put(self, char: str) -> Display:
        """Put one character at the cursor without moving it.

        Raises:
            InvalidArgument: If *char* is not a single one-column character.
        """
        if not isinstance(char, str) or len(char) != 1 or wcwidth(char) != 1:
            raise InvalidArgument(f"{char!r} is not a single character")
        self._cells[self._row - 1][self._column - 1] = Cell(
            char, self._color, self._on_color, self._styles
        )
        return self

    def write(self, string: str) -> Display:
        """Write left to right, stopping silently at the right edge."""
        for char in string:
            self.put(char)
            if self._column == self._columns:
                break
            self._column += 1
        return self

    def write_centered(self, string: str) -> Display:
        column = max((self._columns - len(string)) // 2 + 1, 1)
        return self.at(self._row, column).write(string)

    def get(self) -> Cell:
        return self._cells[self._row - 1][self._column - 1]

    # ── Traversal, diff and rendering ──────────────────────────────────────

    def each(self) -> Iterator[tuple[int, int, Cell]]:
        """Yield ``(row, column, cell)`` for every cell, row-major."""
        for row, cells in enumerate(self._cells, start=1):
            for column, cell in enumerate(cells, start=1):
                yield row, column, cell

    def diff(self, old: Display) -> DisplayDiff:
        """Changes that turn *old* into this display.

        Raises:
            DimensionMismatch: If the two displays differ in size.
        """
        if old.dimensions != self.dimensions:
            raise DimensionMismatch(
                f"old dimensions {old.dimensions} don't match {self.dimensions}"
            )
        return DisplayDiff(
            [
                (row, column, cell)
                for (row, column, cell), (_, _, old_cell) in zip(self.each(), old.each())
                if cell != old_cell
            ]
        )

    def apply(self, diff: DisplayDiff) -> Display:
        """Write every changed cell of *diff* into this display."""
        for row, column, cell in diff:
            self.at(row, column)
            self._cells[row - 1][column - 1] = cell
        return self

    def copy(self) -> Display:
        clone = Display(self._lines, self._columns, self._orig_color, self._orig_on_color)
        clone._cells = [list(cells) for cells in self._cells]
        clone._row, clone._column = self._row, self._column
        clone._color, clone._on_color = self._color, self._on_color
        clone._styles = self._styles
        return clone

    def render(self) -> str:
        """Clear the screen, then every cell at its position."""
        return terminal.CLEAR_SCREEN + "".join(
            terminal.move_to(row, column) + cell.render()
            for row, column, cell in self.each()
        )

    def __str__(self) -> str:
        return self.render()

    def __repr__(self) -> str:
        return f"<{type(self).__name__}: {self._columns}x{self._lines}>"
