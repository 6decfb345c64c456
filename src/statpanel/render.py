"""Mapping from snapshots and connection errors to display states.

Everything here is pure: no connection knowledge, no widgets. The TUI and the
probe command turn the results into text.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from statpanel.snapshot import Snapshot

OK_MARK = "✅"
FAIL_MARK = "❌"


@dataclass(frozen=True)
class Disconnected:
    """Connection was closed on purpose."""

    url: str


@dataclass(frozen=True)
class Error:
    """Connection failed, was lost, or sent something unreadable."""

    url: str


@dataclass(frozen=True)
class Connected:
    """A snapshot arrived over a live connection."""

    snapshot: Snapshot
    url: str


DisplayState = Union[Disconnected, Error, Connected]


def render(snapshot: Snapshot | None, error: bool = False, url: str = "") -> DisplayState:
    """Map a snapshot or error condition to a display state.

    Args:
        snapshot: Latest snapshot, or None when there is nothing to show
        error: Whether the connection is in an error condition
        url: Endpoint address shown alongside the status
    """
    url = url or ""
    if error:
        return Error(url)
    if snapshot is None:
        return Disconnected(url)
    return Connected(snapshot, url)


# ─────────────────────────────────────────────────────────────────────────────
# Feature table
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class FeatureRow:
    """One row of the status table: a label and one mark per signal."""

    label: str
    checks: tuple[bool, ...]
    values: tuple[str, ...] = ()

    @property
    def marks(self) -> str:
        return " ".join(OK_MARK if ok else FAIL_MARK for ok in self.checks)


def cpu_checks(snapshot: Snapshot) -> tuple[bool, bool]:
    """(CPU identified, CPU usage reported)."""
    return bool(snapshot.cpu_name), snapshot.cpu_usage is not None


def ram_checks(snapshot: Snapshot) -> tuple[bool, bool]:
    """(RAM detected, RAM usage reported)."""
    return bool(snapshot.ram_amount), snapshot.ram_usage is not None


def gpu_checks(snapshot: Snapshot) -> tuple[bool, bool, bool]:
    """(GPU available, GPU usage reported, GPU temperature reported)."""
    return (
        snapshot.gpu_available,
        snapshot.gpu_usage is not None,
        snapshot.gpu_temp is not None,
    )


def network_checks(snapshot: Snapshot) -> tuple[bool, bool]:
    """(download reported, upload reported)."""
    return snapshot.network_down is not None, snapshot.network_up is not None


def disk_checks(snapshot: Snapshot) -> tuple[bool]:
    return (snapshot.disks is not None,)


def feature_rows(display: DisplayState) -> list[FeatureRow]:
    """Build the status table for a display state.

    Error and Disconnected states only show the connection rows. Connected
    states show one row per resource, each evaluated independently.
    """
    if isinstance(display, Error):
        return [
            FeatureRow("Status", (False,), ("Connection Error",)),
            FeatureRow("WebSocket", (False,), (display.url,)),
        ]
    if isinstance(display, Disconnected):
        return [
            FeatureRow("Status", (False,), ("Disconnected",)),
            FeatureRow("WebSocket", (False,), (display.url,)),
        ]

    s = display.snapshot
    return [
        FeatureRow("WebSocket", (True,), (display.url,)),
        FeatureRow("CPU", cpu_checks(s), (format_percent(s.cpu_usage),)),
        FeatureRow("RAM", ram_checks(s), (format_percent(s.ram_usage),)),
        FeatureRow(
            "GPU",
            gpu_checks(s),
            (format_percent(s.gpu_usage), format_temp(s.gpu_temp)),
        ),
        FeatureRow(
            "Network",
            network_checks(s),
            (f"↓ {format_rate(s.network_down)}", f"↑ {format_rate(s.network_up)}"),
        ),
        FeatureRow("Disk", disk_checks(s)),
    ]


# ─────────────────────────────────────────────────────────────────────────────
# Value formatting
# ─────────────────────────────────────────────────────────────────────────────


def format_percent(value: float | None) -> str:
    """Format a 0-100 percentage, or '--' when absent."""
    if value is None:
        return "--"
    return f"{value:.0f}%"


def format_temp(value: float | None) -> str:
    """Format a temperature in degrees Celsius."""
    if value is None:
        return "--"
    return f"{value:.0f}°C"


def format_bytes(bytes_val: float | None) -> str:
    """Format a byte count with binary units."""
    if bytes_val is None:
        return "--"
    size = float(bytes_val)
    for unit in ("B", "KB", "MB", "GB", "TB"):
        if abs(size) < 1024 or unit == "TB":
            if unit == "B":
                return f"{size:.0f}{unit}"
            return f"{size:.1f}{unit}"
        size /= 1024
    return f"{size:.1f}TB"


def format_amount(amount: float | str | None) -> str:
    """Format a total-memory value. Labels from the source pass through as-is."""
    if isinstance(amount, str):
        return amount
    return format_bytes(amount)


def format_rate(bytes_per_sec: float | None) -> str:
    """Format a throughput value as bytes per second."""
    if bytes_per_sec is None:
        return "--"
    return f"{format_bytes(bytes_per_sec)}/s"
