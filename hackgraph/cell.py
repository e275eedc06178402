"""A single character cell of a terminal display."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache

from rich.style import Style


@lru_cache(maxsize=1024)
def _style(foreground: str, background: str, styles: frozenset[str]) -> Style:
    return Style(color=foreground, bgcolor=background, **{s: True for s in styles})


@dataclass(frozen=True)
class Cell:
    """One character plus foreground, background and a set of style names.

    Cells are immutable; a Display replaces the cell at a position instead of
    changing it. ``styles`` is a frozenset, so two cells built with the same
    styles in a different order compare equal.
    """

    char: str
    foreground: str
    background: str
    styles: frozenset[str] = field(default_factory=lambda: frozenset[str]())

    def render(self) -> str:
        """Colors, styles, the character and a full attribute reset."""
        return _style(self.foreground, self.background, self.styles).render(self.char)

    def __str__(self) -> str:
        return self.render()
