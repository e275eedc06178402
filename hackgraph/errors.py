"""Exceptions raised by the display and graph layers.

All of them are programmer errors: misuse of the Display API fails fast
instead of being silently corrected.
"""


class HackgraphError(Exception):
    pass


class InvalidDimensions(HackgraphError, ValueError):
    """A Display was asked for a non-positive number of lines or columns."""


class OutOfBounds(HackgraphError, IndexError):
    """The cursor was moved outside of the grid."""


class InvalidColor(HackgraphError, ValueError):
    """Unknown color identifier, or a color without an RGB value."""


class InvalidStyle(HackgraphError, ValueError):
    pass


class InvalidArgument(HackgraphError, ValueError):
    """A put target that is not exactly one single-column character."""


class DimensionMismatch(HackgraphError, ValueError):
    """Two displays of different size were diffed."""
