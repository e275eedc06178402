"""Live terminal graph of a numeric time series.

A Graph pulls one sample per tick from a ``(tick) -> number`` function,
keeps as many samples as the terminal is wide, draws them with half-block
glyphs and sends only the cells that changed since the previous frame.

Usage:
    Graph(title="CPU", value=lambda i: psutil.cpu_percent(), interval=1).start()
"""

from __future__ import annotations

import atexit
import logging
import queue
import signal
import sys
import threading
import time
from collections.abc import Callable
from types import FrameType
from typing import Any, TextIO, Union

from hackgraph import terminal
from hackgraph.display import Display, color_name
from hackgraph.errors import InvalidColor
from hackgraph.formatters import (
    ADJUSTMENTS,
    Formatter,
    adjust_color,
    as_default,
    derive_color_from_string,
    formatter,
)

logger = logging.getLogger(__name__)

ColorSpec = Union[str, int, Callable[[str], Union[str, int]], None]

# Half-block glyphs: the upper half is drawn in the foreground color and the
# lower half in the background color, or vice versa.
UPPER_HALF = "▀"
LOWER_HALF = "▄"

# Events pushed by signal handlers and drained at the top of every tick.
RESIZE = "resize"
INTERRUPT = "interrupt"


class Graph:
    """Draws a rolling window of samples, one column per sample."""

    def __init__(
        self,
        title: str,
        value: Callable[[int], float] = lambda i: 0,
        format_value: Formatter | str | None = None,
        interval: float | None = 1.0,
        ticks: int | None = None,
        color: ColorSpec = None,
        color_secondary: ColorSpec = None,
        adjust_brightness: str = "lighten",
        adjust_brightness_percentage: float = 15,
        foreground_color: str | int = "white",
        background_color: str | int = "black",
        output: TextIO | None = None,
        terminal_size: Callable[[], tuple[int, int]] = terminal.terminal_size,
    ) -> None:
        if interval is None or interval < 0:
            raise ValueError(f"interval has to be >= 0, got {interval!r}")
        if ticks is not None and ticks < 1:
            raise ValueError(f"ticks has to be >= 1, got {ticks!r}")
        if adjust_brightness not in ADJUSTMENTS:
            raise ValueError(
                f"unknown brightness adjustment {adjust_brightness!r}"
                f" (choose from {', '.join(ADJUSTMENTS)})"
            )
        self.title = title
        self.interval = interval
        self.ticks = ticks
        self._value = value
        if isinstance(format_value, str):
            self._format_value = formatter(format_value)
        else:
            self._format_value = format_value or as_default
        self._color = color
        self._color_secondary = color_secondary
        self._adjust_brightness = adjust_brightness
        self._adjust_brightness_percentage = adjust_brightness_percentage
        self._foreground_color = color_name(foreground_color)
        self._background_color = color_name(background_color)
        self._output = output
        self._terminal_size = terminal_size

        self.data: list[float] = []
        self._running = False
        self._counter = -1
        self._display: Display | None = None
        self._old_display: Display | None = None
        self._mutex = threading.Lock()
        self._events: queue.SimpleQueue[str] = queue.SimpleQueue()
        self._wake = threading.Event()
        self._previous_handlers: dict[int, Any] = {}

    # ── Lifecycle ──────────────────────────────────────────────────────────

    @property
    def running(self) -> bool:
        return self._running

    @property
    def frame(self) -> Display | None:
        """The display last sent to the terminal."""
        return self._old_display

    def start(self) -> None:
        """Take over the terminal and run the tick loop until stopped."""
        while not self._events.empty():
            self._events.get_nowait()
        self._wake.clear()
        self._install_handlers()
        try:
            self.full_reset()
            self._loop()
        finally:
            self._restore_handlers()

    def stop(self) -> None:
        """Restore the terminal and end the loop at its next checkpoint."""
        self.full_reset()
        self._running = False
        self._wake.set()

    def full_reset(self) -> None:
        """Clear the screen and allocate a fresh display pair."""
        with self._mutex:
            lines, columns = self._terminal_size()
            self._perform(
                terminal.RESET, terminal.CLEAR_SCREEN, terminal.MOVE_HOME, terminal.SHOW_CURSOR
            )
            self._display = self._new_display(lines, columns)
            self._old_display = self._new_display(lines, columns)
            self._perform(self._display.render())
        logger.debug("full reset to %dx%d", lines, columns)

    # ── Tick loop ──────────────────────────────────────────────────────────

    def _loop(self) -> None:
        self.data = []
        self._counter = -1
        self._running = True
        logger.info("graph %r started, interval %ss", self.title, self.interval)
        try:
            primary, secondary = self.colors()
            while self._running:
                started = time.monotonic()
                if not self._drain_events():
                    break
                self.tick(primary, secondary)
                if self.ticks is not None and self._counter + 1 >= self.ticks:
                    break
                self._sleep(started)
        except KeyboardInterrupt:
            logger.info("graph %r interrupted", self.title)
        finally:
            self.stop()
            logger.info("graph %r stopped after %d ticks", self.title, self._counter + 1)

    def _drain_events(self) -> bool:
        """Handle queued signal events; False means the loop has to end."""
        resize = False
        while True:
            try:
                event = self._events.get_nowait()
            except queue.Empty:
                break
            if event == INTERRUPT:
                return False
            resize = resize or event == RESIZE
        if resize:
            logger.debug("terminal resized")
            self.full_reset()
        return True

    def tick(self, primary: str, secondary: str) -> None:
        """Take one sample, redraw and send the changed cells."""
        display = self._current()
        self._perform(terminal.HIDE_CURSOR)

        self._counter += 1
        self.data.append(self._value(self._counter))
        self.data = self.data[-display.columns :]

        low, high = min(self.data), max(self.data)
        y_width = float(high - low)
        if y_width == 0:
            display.reset().bottom().styled("bold").write_centered(
                f"{self.title} / {self.sleep_duration}"
            )
            display.reset().centered().styled("italic").write_centered("no data")
        else:
            display.reset()
            self.draw(display, primary, secondary, low, y_width)
            display.reset().bottom().styled("bold").write_centered(
                f"{self.title} {self._format_value(self.data[-1])} / {self.sleep_duration}"
            )
            display.reset().styled("bold").left().top().write(self._format_value(high))
            display.left().bottom().write(self._format_value(low))
        self._perform_display_diff()

    def draw(
        self,
        display: Display,
        primary: str,
        secondary: str,
        low: float,
        y_width: float,
    ) -> None:
        """Draw the buffered samples right-aligned with half-cell resolution.

        Every sample becomes a bar of half-cells stacked from the bottom line.
        The topmost half-cell is drawn in the primary color, the rest in the
        secondary one, so a fractional height below .5 leaves the primary
        color in the lower half of the boundary cell and one of .5 or more
        puts it in the upper half.
        """
        lines, columns = display.dimensions
        background = self._background_color
        offset = columns - len(self.data) + 1
        for i, value in enumerate(self.data):
            x = i + offset
            y0 = (value - low) * lines / y_width
            halves = min(int(y0 * 2) + 1, 2 * lines)
            for k in range((halves + 1) // 2):
                y = lines - k
                # Half-cells 2k and 2k + 1 make up row k counted from the bottom
                if 2 * k + 1 == halves:
                    display.at(y, x).color(primary).on_color(background).put(LOWER_HALF)
                elif 2 * k + 2 == halves:
                    display.at(y, x).color(primary).on_color(secondary).put(UPPER_HALF)
                else:
                    display.at(y, x).color(secondary).on_color(secondary).put(" ")
        display.reset()

    def _perform_display_diff(self) -> None:
        with self._mutex:
            display = self._display
            old = self._old_display
            assert display is not None
            if old is None or old.dimensions != display.dimensions:
                old = self._new_display(*display.dimensions)
            started = time.monotonic()
            diff = display.diff(old)
            rendered = diff.render()
            self._perform(rendered)
            self._display, self._old_display = old.clear(), display
            self._perform(terminal.move_to(display.lines, display.columns))
            logger.debug(
                "diff %d cells, %d bytes in %.4fs",
                len(diff),
                len(rendered),
                time.monotonic() - started,
            )

    def _sleep(self, started: float) -> None:
        duration = max(self.interval - (time.monotonic() - started), 0)
        if duration:
            # Returns early when stop() or SIGTERM sets the event
            self._wake.wait(duration)

    # ── Colors and labels ──────────────────────────────────────────────────

    def colors(self) -> tuple[str, str]:
        """Resolve the primary and secondary bar colors.

        Raises:
            InvalidColor: If a configured color is not a color identifier.
        """
        picked = self._pick(self._color)
        if picked is None:
            primary = derive_color_from_string(self.title)
        else:
            primary = color_name(picked)
        picked = self._pick(self._color_secondary)
        if picked is not None:
            return primary, color_name(picked)
        try:
            secondary = adjust_color(
                primary, self._adjust_brightness, self._adjust_brightness_percentage
            )
        except InvalidColor:
            logger.debug("cannot adjust %r, using it as secondary color", primary)
            secondary = primary
        return primary, secondary

    def _pick(self, choice: ColorSpec) -> str | int | None:
        if callable(choice):
            return choice(self.title)
        return choice

    @property
    def sleep_duration(self) -> str:
        return f"{self.interval}s"

    # ── Terminal ───────────────────────────────────────────────────────────

    def _new_display(self, lines: int, columns: int) -> Display:
        return Display(
            lines, columns, color=self._foreground_color, on_color=self._background_color
        )

    def _current(self) -> Display:
        if self._display is None:
            self.full_reset()
        assert self._display is not None
        return self._display

    def _perform(self, *parts: str) -> None:
        out = self._output or sys.stdout
        out.write("".join(parts))
        out.flush()

    def _install_handlers(self) -> None:
        atexit.register(self.full_reset)
        if threading.current_thread() is not threading.main_thread():
            logger.debug("not on the main thread, signal handlers not installed")
            return
        handlers = {signal.SIGTERM: self._on_interrupt}
        sigwinch = getattr(signal, "SIGWINCH", None)
        if sigwinch is not None:
            handlers[sigwinch] = self._on_resize
        for signum, handler in handlers.items():
            self._previous_handlers[signum] = signal.signal(signum, handler)

    def _restore_handlers(self) -> None:
        atexit.unregister(self.full_reset)
        for signum, handler in self._previous_handlers.items():
            # None: the previous handler was not installed from Python
            signal.signal(signum, signal.SIG_DFL if handler is None else handler)
        self._previous_handlers.clear()

    def _on_resize(self, signum: int, frame: FrameType | None) -> None:
        self._events.put(RESIZE)

    def _on_interrupt(self, signum: int, frame: FrameType | None) -> None:
        self._events.put(INTERRUPT)
        self._wake.set()
