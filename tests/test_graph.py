"""Tests for the graph tick loop, drawing and colors."""

from __future__ import annotations

import io
import os
import signal
import threading
import time
from typing import Any

import pytest

from hackgraph import terminal
from hackgraph.display import Display
from hackgraph.errors import InvalidColor
from hackgraph.formatters import adjust_color, derive_color_from_string
from hackgraph.graph import LOWER_HALF, UPPER_HALF, Graph


def _graph(size: tuple[int, int] = (4, 10), **kwargs: Any) -> Graph:
    kwargs.setdefault("title", "t")
    kwargs.setdefault("interval", 0)
    return Graph(output=io.StringIO(), terminal_size=lambda: size, **kwargs)


def _output(graph: Graph) -> str:
    out = graph._output
    assert isinstance(out, io.StringIO)
    return out.getvalue()


def _row_text(display: Display, row: int) -> str:
    return "".join(cell.char for r, _, cell in display.each() if r == row)


def _run_ticks(graph: Graph, n: int) -> Display:
    """Drive the loop body by hand and return the last rendered frame."""
    graph.full_reset()
    primary, secondary = graph.colors()
    for _ in range(n):
        graph.tick(primary, secondary)
    assert graph.frame is not None
    return graph.frame


# ── Configuration ──────────────────────────────────────────────────────────


class TestConstruction:
    @pytest.mark.parametrize("interval", [None, -1, -0.5])
    def test_invalid_interval(self, interval: float | None) -> None:
        with pytest.raises(ValueError):
            _graph(interval=interval)

    def test_zero_interval_allowed(self) -> None:
        assert _graph(interval=0).interval == 0

    def test_invalid_ticks(self) -> None:
        with pytest.raises(ValueError):
            _graph(ticks=0)

    def test_unknown_named_formatter(self) -> None:
        with pytest.raises(ValueError):
            _graph(format_value="furlongs")

    def test_sleep_duration_label(self) -> None:
        assert _graph(interval=2.5).sleep_duration == "2.5s"

    @pytest.mark.parametrize("key", ["foreground_color", "background_color"])
    def test_invalid_display_colors(self, key: str) -> None:
        with pytest.raises(InvalidColor):
            _graph(**{key: "nope"})

    def test_palette_index_display_color(self) -> None:
        graph = _graph(background_color=17, value=lambda i: i)
        frame = _run_ticks(graph, 1)
        assert frame.at(1, 1).get().background == "color(17)"

    def test_unknown_brightness_adjustment(self) -> None:
        with pytest.raises(ValueError, match="unknown brightness adjustment"):
            _graph(adjust_brightness="brighten")


# ── Loop ───────────────────────────────────────────────────────────────────


class TestLoop:
    def test_four_ticks_fill_buffer(self) -> None:
        graph = _graph(size=(4, 10), value=lambda i: i, ticks=4)
        graph.start()
        assert graph.data == [0, 1, 2, 3]
        assert not graph.running

    def test_buffer_bounded_by_columns(self) -> None:
        graph = _graph(size=(4, 5), value=lambda i: i, ticks=8)
        graph.start()
        assert graph.data == [3, 4, 5, 6, 7]

    def test_single_tick(self) -> None:
        calls: list[int] = []
        graph = _graph(value=lambda i: calls.append(i) or i, ticks=1)
        graph.start()
        assert calls == [0]

    def test_output_starts_with_full_reset(self) -> None:
        graph = _graph(value=lambda i: i, ticks=2)
        graph.start()
        out = _output(graph)
        assert out.startswith(
            terminal.RESET + terminal.CLEAR_SCREEN + terminal.MOVE_HOME + terminal.SHOW_CURSOR
        )
        assert terminal.HIDE_CURSOR in out

    def test_teardown_restores_terminal(self) -> None:
        graph = _graph(value=lambda i: i, ticks=3)
        graph.start()
        out = _output(graph)
        teardown = out.rindex(terminal.RESET + terminal.CLEAR_SCREEN)
        assert terminal.SHOW_CURSOR in out[teardown:]
        assert terminal.HIDE_CURSOR not in out[teardown:]

    def test_keyboard_interrupt_is_graceful(self) -> None:
        def value(i: int) -> int:
            if i == 3:
                raise KeyboardInterrupt
            return i

        graph = _graph(value=value)
        graph.start()
        assert graph.data == [0, 1, 2]
        assert not graph.running
        assert _output(graph).endswith(terminal.SHOW_CURSOR + graph.frame.render())  # type: ignore[union-attr]

    def test_other_errors_propagate_after_teardown(self) -> None:
        def value(i: int) -> int:
            if i == 2:
                raise RuntimeError("sensor gone")
            return i

        graph = _graph(value=value)
        with pytest.raises(RuntimeError, match="sensor gone"):
            graph.start()
        assert not graph.running
        assert _output(graph).endswith(terminal.SHOW_CURSOR + graph.frame.render())  # type: ignore[union-attr]

    def test_stop_ends_loop(self) -> None:
        graph: Graph

        def value(i: int) -> int:
            if i == 1:
                graph.stop()
            return i

        graph = _graph(value=value)
        graph.start()
        assert graph.data == [0, 1]

    def test_restart_starts_fresh(self) -> None:
        graph = _graph(value=lambda i: i * 2, ticks=2)
        graph.start()
        graph.start()
        assert graph.data == [0, 2]

    @pytest.mark.skipif(not hasattr(signal, "SIGWINCH"), reason="needs SIGWINCH")
    def test_resize_triggers_full_reset(self) -> None:
        size = [(4, 10)]

        def value(i: int) -> int:
            if i == 5:
                size[0] = (4, 3)
                os.kill(os.getpid(), signal.SIGWINCH)
            return i

        graph = Graph(
            title="t", value=value, interval=0, ticks=8,
            output=io.StringIO(), terminal_size=lambda: size[0],
        )
        graph.start()
        assert graph.data == [5, 6, 7]

    def test_sigterm_stops_loop(self) -> None:
        previous = signal.getsignal(signal.SIGTERM)

        def value(i: int) -> int:
            if i == 2:
                os.kill(os.getpid(), signal.SIGTERM)
            return i

        graph = _graph(value=value)
        graph.start()
        assert graph.data == [0, 1, 2]
        assert signal.getsignal(signal.SIGTERM) == previous

    def test_sigterm_cuts_sleep_short(self) -> None:
        graph = _graph(value=lambda i: i, interval=3)
        timer = threading.Timer(0.3, os.kill, (os.getpid(), signal.SIGTERM))
        timer.start()
        started = time.monotonic()
        try:
            graph.start()
        finally:
            timer.cancel()
        assert time.monotonic() - started < 1.0
        assert graph.data == [0]
        assert not graph.running

    def test_foreign_handler_restored_as_default(self) -> None:
        previous = signal.getsignal(signal.SIGTERM)
        graph = _graph()
        graph._previous_handlers[signal.SIGTERM] = None
        try:
            graph._restore_handlers()
            assert signal.getsignal(signal.SIGTERM) == signal.SIG_DFL
        finally:
            signal.signal(signal.SIGTERM, signal.SIG_DFL if previous is None else previous)


# ── Rendering ──────────────────────────────────────────────────────────────


class TestPlaceholder:
    def test_constant_values_show_no_data(self) -> None:
        graph = _graph(size=(4, 20), value=lambda i: 5)
        frame = _run_ticks(graph, 3)
        assert graph.data == [5, 5, 5]
        assert "no data" in _row_text(frame, 2)
        assert "t / 0s" in _row_text(frame, 4)
        chars = {cell.char for _, _, cell in frame.each()}
        assert UPPER_HALF not in chars
        assert LOWER_HALF not in chars

    def test_placeholder_styles(self) -> None:
        graph = _graph(size=(4, 20), value=lambda i: 1)
        frame = _run_ticks(graph, 1)
        column = _row_text(frame, 2).index("n") + 1
        assert frame.at(2, column).get().styles == frozenset({"italic"})


class TestDraw:
    @pytest.fixture
    def frame(self) -> Display:
        samples = [0, 10, 5]
        graph = _graph(
            size=(6, 40),
            title="x",
            value=lambda i: samples[i],
            color="red",
            color_secondary="blue",
        )
        return _run_ticks(graph, 3)

    def test_minimum_is_lower_half_line(self, frame: Display) -> None:
        cell = frame.at(6, 38).get()
        assert (cell.char, cell.foreground, cell.background) == (LOWER_HALF, "red", "black")
        assert frame.at(5, 38).get().char == " "
        assert frame.at(5, 38).get().background == "black"

    def test_maximum_fills_column(self, frame: Display) -> None:
        top = frame.at(1, 39).get()
        assert (top.char, top.foreground, top.background) == (UPPER_HALF, "red", "blue")
        for row in range(2, 7):
            assert frame.at(row, 39).get().background == "blue"

    def test_middle_value_boundary_cell(self, frame: Display) -> None:
        # y0 = 3.0: primary sits in the lower half of row 3
        boundary = frame.at(3, 40).get()
        assert (boundary.char, boundary.foreground) == (LOWER_HALF, "red")
        assert frame.at(2, 40).get().background == "black"
        for row in (4, 5, 6):
            assert frame.at(row, 40).get().background == "blue"

    def test_fraction_above_half_uses_upper_half(self) -> None:
        samples = [0, 10, 6]  # y0 = 3.6 on six lines
        graph = _graph(
            size=(6, 40), title="x", value=lambda i: samples[i],
            color="red", color_secondary="blue",
        )
        frame = _run_ticks(graph, 3)
        boundary = frame.at(3, 40).get()
        assert (boundary.char, boundary.foreground, boundary.background) == (
            UPPER_HALF, "red", "blue",
        )

    def test_exact_half_uses_upper_half(self) -> None:
        samples = [0, 12, 7]  # y0 = 3.5 on six lines
        graph = _graph(
            size=(6, 40), title="x", value=lambda i: samples[i],
            color="red", color_secondary="blue",
        )
        frame = _run_ticks(graph, 3)
        boundary = frame.at(3, 40).get()
        assert (boundary.char, boundary.foreground, boundary.background) == (
            UPPER_HALF, "red", "blue",
        )
        assert frame.at(2, 40).get().background == "black"

    def test_labels(self, frame: Display) -> None:
        assert _row_text(frame, 1).startswith("10")
        assert _row_text(frame, 6).startswith("0")
        assert "x 5 / 0s" in _row_text(frame, 6)
        assert frame.at(1, 1).get().styles == frozenset({"bold"})

    def test_named_formatter_in_status_line(self) -> None:
        graph = _graph(size=(6, 40), value=lambda i: i, format_value="percent")
        frame = _run_ticks(graph, 2)
        assert "t 1% / 0s" in _row_text(frame, 6)

    def test_second_identical_frame_sends_nothing(self) -> None:
        graph = _graph(size=(4, 20), value=lambda i: 5)
        _run_ticks(graph, 2)
        out = _output(graph)
        before = len(out)
        graph.tick(*graph.colors())
        sent = _output(graph)[before:]
        assert sent == terminal.HIDE_CURSOR + terminal.move_to(4, 20)


# ── Colors ─────────────────────────────────────────────────────────────────


class TestColors:
    def test_derived_from_title(self) -> None:
        primary, secondary = _graph(title="CPU").colors()
        assert primary == derive_color_from_string("CPU")
        assert secondary == adjust_color(primary, "lighten", 15)

    def test_callable_color(self) -> None:
        primary, _ = _graph(title="CPU", color=lambda title: "red").colors()
        assert primary == "red"

    def test_palette_index(self) -> None:
        assert _graph(color=52).colors()[0] == "color(52)"

    def test_explicit_secondary(self) -> None:
        assert _graph(color="red", color_secondary="blue").colors() == ("red", "blue")

    def test_adjustment_settings(self) -> None:
        _, secondary = _graph(
            color="#808080", adjust_brightness="darken", adjust_brightness_percentage=20
        ).colors()
        assert secondary == adjust_color("#808080", "darken", 20)

    def test_falls_back_to_primary(self) -> None:
        assert _graph(color="default").colors() == ("default", "default")

    def test_invalid_color(self) -> None:
        with pytest.raises(InvalidColor):
            _graph(color="nope").colors()
