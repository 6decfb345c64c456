"""Snapshot model and JSON wire decoding."""

from __future__ import annotations

import json
from dataclasses import dataclass, fields
from typing import Any

import structlog

from statpanel.errors import MalformedMessage

log = structlog.get_logger()

# Value the metrics source sends in gpu_name when no GPU was found
GPU_ABSENT_SENTINEL = "No NVIDIA GPU detected"

_STRING_FIELDS = ("cpu_name", "gpu_name")
_NUMBER_FIELDS = (
    "cpu_usage",
    "ram_usage",
    "gpu_usage",
    "gpu_temp",
    "network_down",
    "network_up",
)


@dataclass(frozen=True)
class Snapshot:
    """One point-in-time system-resource measurement.

    Every field is optional. None means the source did not report it.
    `ram_amount` is either a byte count or a preformatted label ("31.9 GB").
    `disks` is a presence-only signal and keeps whatever JSON value was sent.
    """

    cpu_name: str | None = None
    cpu_usage: float | None = None
    ram_amount: float | str | None = None
    ram_usage: float | None = None
    gpu_name: str | None = None
    gpu_usage: float | None = None
    gpu_temp: float | None = None
    network_down: float | None = None
    network_up: float | None = None
    disks: Any = None
    active_connections: int | None = None

    @property
    def gpu_available(self) -> bool:
        """Whether a GPU was detected. The sentinel name counts as absent."""
        return self.gpu_name is not None and self.gpu_name != GPU_ABSENT_SENTINEL


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_count(value: Any) -> bool:
    if isinstance(value, float):
        return value.is_integer()
    return isinstance(value, int) and not isinstance(value, bool)


def _checked(name: str, value: Any, ok: bool) -> Any:
    """Return value if it has the expected type, else None."""
    if value is None or ok:
        return value
    log.debug("snapshot_field_ignored", field=name, type=type(value).__name__)
    return None


def snapshot_from_dict(data: dict[str, Any]) -> Snapshot:
    """Build a Snapshot from a decoded JSON object.

    Unknown keys are ignored and missing keys become None. A known key whose
    value has the wrong type is treated as not reported.
    """
    values: dict[str, Any] = {}
    for name in _STRING_FIELDS:
        value = data.get(name)
        values[name] = _checked(name, value, isinstance(value, str))
    for name in _NUMBER_FIELDS:
        value = data.get(name)
        values[name] = _checked(name, value, _is_number(value))

    ram_amount = data.get("ram_amount")
    values["ram_amount"] = _checked(
        "ram_amount", ram_amount, _is_number(ram_amount) or isinstance(ram_amount, str)
    )

    active = data.get("active_connections")
    active = _checked(
        "active_connections", active, _is_count(active)
    )
    values["active_connections"] = int(active) if active is not None else None
    values["disks"] = data.get("disks")

    return Snapshot(**values)


def parse_snapshot(raw: str | bytes) -> Snapshot:
    """Decode one wire frame into a Snapshot.

    Args:
        raw: Text frame, or bytes holding UTF-8 JSON

    Raises:
        MalformedMessage: If the frame is not UTF-8 JSON holding an object
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedMessage(f"frame is not valid UTF-8: {e}") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedMessage(f"frame is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedMessage(f"expected a JSON object, got {type(data).__name__}")

    return snapshot_from_dict(data)


def snapshot_to_dict(snapshot: Snapshot) -> dict[str, Any]:
    """Return the reported fields of a snapshot, dropping absent ones."""
    return {
        f.name: getattr(snapshot, f.name)
        for f in fields(snapshot)
        if getattr(snapshot, f.name) is not None
    }
