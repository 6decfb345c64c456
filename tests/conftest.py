"""Shared test fixtures for statpanel."""

import asyncio
import json
from typing import Any

import pytest

from statpanel.snapshot import Snapshot


class FakeConnection:
    """Connection double that records open/close and lets tests fire callbacks."""

    def __init__(self, url: str, listener: Any):
        self.url = url
        self.listener = listener
        self.opened = False
        self.closed = False

    def open(self) -> None:
        self.opened = True

    def close(self) -> None:
        self.closed = True

    # Simulated socket events

    def emit_open(self) -> None:
        self.listener.on_open(connection=self)

    def emit_message(self, payload: dict[str, Any] | str) -> None:
        raw = payload if isinstance(payload, str) else json.dumps(payload)
        self.listener.on_message(raw, connection=self)

    def emit_error(self, err: Exception | None = None) -> None:
        self.listener.on_error(err or ConnectionError("boom"), connection=self)

    def emit_close(self) -> None:
        self.closed = True
        self.listener.on_close(connection=self)


class FakeConnectionFactory:
    """Connection factory that keeps every connection it created."""

    def __init__(self):
        self.created: list[FakeConnection] = []

    def __call__(self, url: str, listener: Any) -> FakeConnection:
        conn = FakeConnection(url, listener)
        self.created.append(conn)
        return conn

    @property
    def last(self) -> FakeConnection:
        return self.created[-1]

    @property
    def live(self) -> list[FakeConnection]:
        """Connections opened and not yet closed."""
        return [c for c in self.created if c.opened and not c.closed]


@pytest.fixture
def factory() -> FakeConnectionFactory:
    """Fresh fake connection factory."""
    return FakeConnectionFactory()


@pytest.fixture
def displays() -> list:
    """List collecting every display state a supervisor renders."""
    return []


def make_snapshot(**overrides: Any) -> Snapshot:
    """Create a fully populated Snapshot, with optional overrides."""
    values: dict[str, Any] = {
        "cpu_name": "AMD Ryzen 7 5800X",
        "cpu_usage": 12.5,
        "ram_amount": 34359738368,
        "ram_usage": 48.0,
        "gpu_name": "NVIDIA GeForce RTX 3070",
        "gpu_usage": 7.0,
        "gpu_temp": 45.0,
        "network_down": 1024.0,
        "network_up": 512.0,
        "disks": [{"name": "C:", "usage": 70}],
        "active_connections": 2,
    }
    values.update(overrides)
    return Snapshot(**values)


async def wait_until(condition, timeout=2.0, interval=0.01):
    """Wait until condition() returns True, or timeout."""
    deadline = asyncio.get_running_loop().time() + timeout
    while not condition():
        if asyncio.get_running_loop().time() > deadline:
            raise TimeoutError(f"Condition not met within {timeout}s")
        await asyncio.sleep(interval)
