"""Sample sources for the graph: ``(tick) -> number`` callables.

Each source is registered under a name with the title and formatter it is
usually shown with. ``make()`` returns a fresh callable, so sources that
compute rates keep their previous counters per graph.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

import psutil

from hackgraph.ioreg import ioreg, query

Sample = Callable[[int], float]

# ── Readers ────────────────────────────────────────────────────────────────


def _read_temp() -> float | None:
    try:
        temps = psutil.sensors_temperatures()
    except AttributeError:
        return None
    if not temps:
        return None
    for chip in ("coretemp", "k10temp", "cpu_thermal", "acpitz"):
        if chip in temps and temps[chip]:
            return float(temps[chip][0].current)
    for entries in temps.values():
        if entries:
            return float(entries[0].current)
    return None


def cpu() -> Sample:
    # Warm up psutil's internal delta so the first tick isn't 0.0
    psutil.cpu_percent(interval=None)
    return lambda tick: psutil.cpu_percent(interval=None)


def memory() -> Sample:
    return lambda tick: psutil.virtual_memory().used


def swap() -> Sample:
    return lambda tick: psutil.swap_memory().used


def temperature() -> Sample:
    """CPU temperature in °C; 0.0 when no sensor is available."""
    return lambda tick: _read_temp() or 0.0


def frequency() -> Sample:
    """Current CPU frequency in Hz (psutil reports MHz)."""

    def sample(tick: int) -> float:
        freq = psutil.cpu_freq()
        return freq.current * 1_000_000 if freq else 0.0

    return sample


def _net_rate(attr: str) -> Sample:
    prev_bytes: int | None = None
    prev_time = 0.0

    def sample(tick: int) -> float:
        nonlocal prev_bytes, prev_time
        now = time.monotonic()
        counters = psutil.net_io_counters()
        if counters is None:
            return 0.0
        current = int(getattr(counters, attr))
        rate = 0.0
        if prev_bytes is not None and now > prev_time:
            rate = max(0.0, (current - prev_bytes) / (now - prev_time))
        prev_bytes, prev_time = current, now
        return rate

    return sample


def net_rx() -> Sample:
    return _net_rate("bytes_recv")


def net_tx() -> Sample:
    return _net_rate("bytes_sent")


def gpu() -> Sample:
    """GPU utilisation in percent from the IO registry (macOS only)."""

    def sample(tick: int) -> float:
        value = query(
            ioreg("PerformanceStatistics"),
            "PerformanceStatistics/Device Utilization %",
        )
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        return 0.0

    return sample


# ── Registry ───────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class SampleSource:
    title: str
    format: str
    make: Callable[[], Sample]


SOURCES: dict[str, SampleSource] = {
    "cpu": SampleSource("CPU", "percent", cpu),
    "memory": SampleSource("Memory", "bytes", memory),
    "swap": SampleSource("Swap", "bytes", swap),
    "temperature": SampleSource("Temperature", "celsius", temperature),
    "frequency": SampleSource("Frequency", "hertz", frequency),
    "net_rx": SampleSource("Net RX", "bytes", net_rx),
    "net_tx": SampleSource("Net TX", "bytes", net_tx),
    "gpu": SampleSource("GPU", "percent", gpu),
}
