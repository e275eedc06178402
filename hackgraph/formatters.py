"""Value formatters and text-derived colors for graph labels.

The ``as_*`` functions turn a raw sample into the label shown on the graph:

    as_bytes(1024 * 1024)   # "1.000MB"
    as_hertz(2_500_000_000) # "2.500GHz"
    as_celsius(37.5)        # "37.5°"
    as_percent(95.7)        # "95.7%"
    as_default(42)          # "42"
"""

from __future__ import annotations

import colorsys
import hashlib
import struct
from collections.abc import Callable
from functools import lru_cache

from rich.color import Color, ColorParseError

from hackgraph.errors import InvalidColor

Formatter = Callable[[float], str]

# ── Constants ──────────────────────────────────────────────────────────────

_PREFIXES = ("", "K", "M", "G", "T", "P", "E", "Z", "Y")

# Palette range the derived colors are drawn from, and the HSL lightness (in
# percent) a palette entry must stay below to be picked.
_PALETTE_RANGE = range(21, 227)
_DARKNESS_THRESHOLD = 40.0

ADJUSTMENTS = ("lighten", "darken", "saturate", "desaturate")


# ── Unit formatting ────────────────────────────────────────────────────────


def _format_unit(value: float, step: int, unit: str) -> str:
    scaled = float(value)
    prefix = _PREFIXES[0]
    for p in _PREFIXES[1:]:
        if abs(scaled) < step:
            break
        scaled /= step
        prefix = p
    return f"{scaled:.3f}{prefix}{unit}"


def as_bytes(value: float) -> str:
    """Bytes with power-of-1024 prefixes, e.g. ``1.000MB``."""
    return _format_unit(value, 1024, "B")


def as_hertz(value: float) -> str:
    """Frequency with power-of-1000 prefixes, e.g. ``2.500GHz``."""
    return _format_unit(value, 1000, "Hz")


def as_celsius(value: float) -> str:
    return f"{value}°"


def as_percent(value: float) -> str:
    # No clamping: the caller owns the range.
    return f"{value}%"


def as_default(value: float) -> str:
    return str(value)


FORMATTERS: dict[str, Formatter] = {
    "bytes": as_bytes,
    "hertz": as_hertz,
    "celsius": as_celsius,
    "percent": as_percent,
    "default": as_default,
}


def formatter(name: str) -> Formatter:
    """Look up a formatter by ``"bytes"`` or ``"as_bytes"`` style name.

    Raises:
        ValueError: If no formatter has that name.
    """
    key = name.removeprefix("as_")
    try:
        return FORMATTERS[key]
    except KeyError:
        raise ValueError(
            f"unknown formatter {name!r} (choose from {', '.join(FORMATTERS)})"
        ) from None


# ── Colors ─────────────────────────────────────────────────────────────────


def _rgb(color: str) -> tuple[float, float, float]:
    try:
        parsed = Color.parse(color)
    except ColorParseError as e:
        raise InvalidColor(f"{color!r} is not a color") from e
    if parsed.is_default:
        raise InvalidColor(f"{color!r} has no RGB value")
    triplet = parsed.get_truecolor()
    return triplet.red / 255, triplet.green / 255, triplet.blue / 255


def lightness(color: str) -> float:
    """HSL lightness of a color in percent."""
    _, l, _ = colorsys.rgb_to_hls(*_rgb(color))
    return l * 100


@lru_cache(maxsize=1)
def dark_palette() -> tuple[str, ...]:
    """Palette entries dark enough to keep light text legible on them."""
    return tuple(
        f"color({n})"
        for n in _PALETTE_RANGE
        if lightness(f"color({n})") < _DARKNESS_THRESHOLD
    )


def derive_color_from_string(string: str) -> str:
    """Pick a dark palette color from the MD5 digest of *string*.

    The same string always maps to the same color.
    """
    palette = dark_palette()
    (seed,) = struct.unpack_from("<Q", hashlib.md5(string.encode("utf-8")).digest())
    return palette[seed % len(palette)]


def adjust_color(color: str, method: str = "lighten", percentage: float = 15) -> str:
    """Shift the HSL lightness or saturation of *color* by *percentage* points.

    Returns:
        The adjusted color as ``#rrggbb``.

    Raises:
        InvalidColor: If the color has no RGB value (e.g. ``"default"``).
        ValueError: If *method* is not one of ADJUSTMENTS.
    """
    if method not in ADJUSTMENTS:
        raise ValueError(
            f"unknown brightness adjustment {method!r} (choose from {', '.join(ADJUSTMENTS)})"
        )
    h, l, s = colorsys.rgb_to_hls(*_rgb(color))
    delta = percentage / 100
    if method == "lighten":
        l += delta
    elif method == "darken":
        l -= delta
    elif method == "saturate":
        s += delta
    else:
        s -= delta
    l = min(max(l, 0.0), 1.0)
    s = min(max(s, 0.0), 1.0)
    r, g, b = colorsys.hls_to_rgb(h, l, s)
    return Color.from_rgb(r * 255, g * 255, b * 255).name
