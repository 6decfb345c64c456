"""WebSocket connection that reports its lifecycle through callbacks."""

from __future__ import annotations

import asyncio
from typing import Protocol

import structlog
import websockets
from websockets.exceptions import WebSocketException

from statpanel.errors import TransportError

log = structlog.get_logger()


class ConnectionListener(Protocol):
    """Receiver of connection lifecycle callbacks.

    Every callback names the connection it came from so the receiver can drop
    callbacks from connections it has already discarded.
    """

    def on_open(self, connection: "Connection | None" = None) -> None: ...

    def on_message(self, raw: str | bytes, connection: "Connection | None" = None) -> None: ...

    def on_error(self, err: Exception, connection: "Connection | None" = None) -> None: ...

    def on_close(self, connection: "Connection | None" = None) -> None: ...


class Connection(Protocol):
    """What the supervisor needs from a connection."""

    url: str

    def open(self) -> None: ...

    def close(self) -> None: ...


class WebSocketConnection:
    """One streaming WebSocket connection.

    open() starts a background task and returns immediately. The task reports
    on_open, then on_message for each frame, and always finishes with
    on_close, even when a callback raises. A transport failure reports on_error
    right before on_close.
    """

    def __init__(self, url: str, listener: ConnectionListener, open_timeout: float = 10.0):
        self.url = url
        self.open_timeout = open_timeout
        self._listener = listener
        self._task: asyncio.Task | None = None
        self._closing = False

    @property
    def running(self) -> bool:
        """Whether the connection task is still alive."""
        return self._task is not None and not self._task.done()

    def open(self) -> None:
        """Start connecting. Must be called from a running event loop."""
        if self._task is not None:
            raise RuntimeError("Connection already opened")
        self._task = asyncio.create_task(self._run())

    def close(self) -> None:
        """Abandon the connection, whether it is still connecting or open.

        The close callback follows asynchronously.
        """
        self._closing = True
        if self._task is None or self._task.done():
            return
        # Called from inside one of our own callbacks: _run stops once it returns.
        if self._task is asyncio.current_task():
            return
        self._task.cancel()

    async def _run(self) -> None:
        try:
            async with websockets.connect(self.url, open_timeout=self.open_timeout) as ws:
                log.debug("connection_opened", url=self.url)
                self._listener.on_open(connection=self)
                if not self._closing:
                    async for raw in ws:
                        self._listener.on_message(raw, connection=self)
                        if self._closing:
                            break
        except asyncio.CancelledError:
            log.debug("connection_abandoned", url=self.url)
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            err = TransportError(f"{type(e).__name__}: {e}")
            self._listener.on_error(err, connection=self)
        finally:
            self._listener.on_close(connection=self)
