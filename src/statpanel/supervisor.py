"""Connection supervision: one live connection, monitored and recovered.

The lifecycle is a pure transition function over ConnectionState. It returns
effects (open, close, render, retry, report) that the runtime supervisors
execute against real connections and timers.

Two supervisors share the transition function:

- ConnectionSupervisor: user-toggled. toggle_connect() opens or closes and
  failures are never retried on their own.
- AmbientFeed: always-on. start() replaces any tracked connection, and every
  close or error re-arms start() after a fixed delay, forever.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Union

import structlog

from statpanel.config import Config
from statpanel.endpoint import EndpointResolver, config_resolver, resolve
from statpanel.errors import EndpointUnavailable, MalformedMessage
from statpanel.render import DisplayState, render
from statpanel.snapshot import parse_snapshot
from statpanel.transport import Connection, ConnectionListener, WebSocketConnection

log = structlog.get_logger()


class ConnectionState(Enum):
    """Lifecycle of the managed connection."""

    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    FAILED = "failed"


class RetryPolicy(Enum):
    """What happens after a connection ends."""

    MANUAL = "manual"  # Wait for the user to toggle again
    AMBIENT = "ambient"  # Re-open after a fixed delay


# ─────────────────────────────────────────────────────────────────────────────
# Events
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Toggle:
    """User pressed connect/disconnect."""


@dataclass(frozen=True)
class Start:
    """Ambient feed (re)start, on init or when a retry timer fires."""


@dataclass(frozen=True)
class Opened:
    """Handshake completed."""


@dataclass(frozen=True)
class MessageReceived:
    raw: str | bytes


@dataclass(frozen=True)
class ErrorOccurred:
    reason: str


@dataclass(frozen=True)
class Closed:
    """Socket finished closing, whoever started it."""


@dataclass(frozen=True)
class EndpointFailed:
    reason: str


Event = Union[Toggle, Start, Opened, MessageReceived, ErrorOccurred, Closed, EndpointFailed]


# ─────────────────────────────────────────────────────────────────────────────
# Effects
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class OpenConnection:
    url: str


@dataclass(frozen=True)
class CloseConnection:
    """Close the tracked connection (no-op if there is none)."""


@dataclass(frozen=True)
class Render:
    display: DisplayState


@dataclass(frozen=True)
class ScheduleRetry:
    delay: float


@dataclass(frozen=True)
class ReportError:
    reason: str


Effect = Union[OpenConnection, CloseConnection, Render, ScheduleRetry, ReportError]

_LIVE = (ConnectionState.CONNECTING, ConnectionState.OPEN, ConnectionState.CLOSING)


def transition(
    state: ConnectionState,
    event: Event,
    *,
    url: str,
    policy: RetryPolicy = RetryPolicy.MANUAL,
    retry_delay: float = 5.0,
) -> tuple[ConnectionState, list[Effect]]:
    """Compute the next state and the effects to run for one event.

    Events that make no sense in the current state (a second toggle while
    connecting, a message after a user close, ...) leave the state unchanged
    and produce no effects.
    """
    ambient = policy is RetryPolicy.AMBIENT
    retry: list[Effect] = [ScheduleRetry(retry_delay)] if ambient else []

    if isinstance(event, Toggle):
        if ambient:
            return state, []
        if state in (ConnectionState.IDLE, ConnectionState.FAILED):
            return ConnectionState.CONNECTING, [OpenConnection(url)]
        if state is ConnectionState.OPEN:
            return ConnectionState.CLOSING, [CloseConnection(), Render(render(None, url=url))]
        return state, []

    if isinstance(event, Start):
        if not ambient:
            return state, []
        effects: list[Effect] = [CloseConnection()] if state in _LIVE else []
        return ConnectionState.CONNECTING, [*effects, OpenConnection(url)]

    if isinstance(event, EndpointFailed):
        effects = [CloseConnection()] if state in _LIVE else []
        return ConnectionState.FAILED, [
            *effects,
            ReportError(event.reason),
            Render(render(None, error=True, url="")),
            *retry,
        ]

    if isinstance(event, Opened):
        if state is ConnectionState.CONNECTING:
            return ConnectionState.OPEN, []
        return state, []

    if isinstance(event, MessageReceived):
        if state not in (ConnectionState.CONNECTING, ConnectionState.OPEN):
            return state, []
        try:
            snapshot = parse_snapshot(event.raw)
        except MalformedMessage as e:
            return transition(
                state,
                ErrorOccurred(f"malformed message: {e}"),
                url=url,
                policy=policy,
                retry_delay=retry_delay,
            )
        return ConnectionState.OPEN, [Render(render(snapshot, url=url))]

    if isinstance(event, ErrorOccurred):
        if state not in (ConnectionState.CONNECTING, ConnectionState.OPEN):
            return state, []
        return ConnectionState.FAILED, [
            ReportError(event.reason),
            Render(render(None, error=True, url=url)),
            CloseConnection(),
            *retry,
        ]

    if isinstance(event, Closed):
        if state in (ConnectionState.CONNECTING, ConnectionState.OPEN):
            return ConnectionState.IDLE, [Render(render(None, error=True, url=url)), *retry]
        return ConnectionState.IDLE, []

    raise TypeError(f"Unknown event: {event!r}")


# ─────────────────────────────────────────────────────────────────────────────
# Runtime
# ─────────────────────────────────────────────────────────────────────────────

ConnectionFactory = Callable[[str, ConnectionListener], Connection]
DisplayCallback = Callable[[DisplayState], None]


class ConnectionSupervisor:
    """User-toggled supervisor for a single streaming connection.

    All methods must run on the event loop thread. Connection callbacks carry
    the connection they came from; callbacks from a connection that has been
    replaced are dropped.
    """

    policy = RetryPolicy.MANUAL

    def __init__(
        self,
        resolver: EndpointResolver,
        on_display: DisplayCallback | None = None,
        *,
        retry_delay: float = 5.0,
        open_timeout: float = 10.0,
        connection_factory: ConnectionFactory | None = None,
    ):
        self._resolver = resolver
        self.on_display = on_display
        self.retry_delay = retry_delay
        self.open_timeout = open_timeout
        self._connection_factory = connection_factory or self._websocket_connection
        self._url: str | None = None
        self._state = ConnectionState.IDLE
        self._connection: Connection | None = None
        self._retry_handles: set[asyncio.TimerHandle] = set()
        self._stopping = False
        self.display: DisplayState = render(None, url="")

    @classmethod
    def from_config(
        cls,
        config: Config,
        on_display: DisplayCallback | None = None,
        resolver: EndpointResolver | None = None,
        **kwargs,
    ):
        """Build a supervisor using the connection settings from config."""
        return cls(
            resolver or config_resolver(config),
            on_display,
            retry_delay=config.connection.reconnect_delay,
            open_timeout=config.connection.open_timeout,
            **kwargs,
        )

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def url(self) -> str | None:
        """Resolved endpoint address, or None before the first successful lookup."""
        return self._url

    @property
    def connection(self) -> Connection | None:
        """The tracked connection, if any."""
        return self._connection

    @property
    def pending_retries(self) -> int:
        """Number of armed retry timers."""
        return len(self._retry_handles)

    def resolve_endpoint(self) -> str:
        """Resolve the endpoint address once and cache it.

        Raises:
            EndpointUnavailable: If the resolver cannot produce an address
        """
        if self._url is None:
            self._url = resolve(self._resolver)
        return self._url

    def toggle_connect(self) -> None:
        """Connect when idle, disconnect when open, ignore while connecting."""
        self._begin(Toggle())

    def stop(self) -> None:
        """Shut down: cancel retry timers and close the tracked connection.

        Callbacks arriving afterwards are ignored.
        """
        self._stopping = True
        for handle in self._retry_handles:
            handle.cancel()
        self._retry_handles.clear()
        if self._connection is not None:
            self._connection.close()
        self._state = ConnectionState.IDLE

    # Connection callbacks

    def on_open(self, connection: Connection | None = None) -> None:
        self._dispatch(Opened(), connection)

    def on_message(self, raw: str | bytes, connection: Connection | None = None) -> None:
        self._dispatch(MessageReceived(raw), connection)

    def on_error(self, err: Exception, connection: Connection | None = None) -> None:
        self._dispatch(ErrorOccurred(str(err)), connection)

    def on_close(self, connection: Connection | None = None) -> None:
        self._dispatch(Closed(), connection)

    # Internals

    def _websocket_connection(self, url: str, listener: ConnectionListener) -> Connection:
        return WebSocketConnection(url, listener, open_timeout=self.open_timeout)

    def _begin(self, event: Event) -> None:
        """Resolve the endpoint (if not cached yet) and dispatch a user/timer event."""
        if self._stopping:
            return
        try:
            self.resolve_endpoint()
        except EndpointUnavailable as e:
            self._dispatch(EndpointFailed(str(e)))
            return
        self._dispatch(event)

    def _dispatch(self, event: Event, connection: Connection | None = None) -> None:
        if self._stopping:
            return
        if connection is not None and connection is not self._connection:
            log.debug("stale_callback_dropped", event=type(event).__name__)
            return

        previous = self._state
        self._state, effects = transition(
            previous,
            event,
            url=self._url or "",
            policy=self.policy,
            retry_delay=self.retry_delay,
        )
        if previous is ConnectionState.CONNECTING and self._state is ConnectionState.OPEN:
            log.info("connection_opened", policy=self.policy.value, url=self._url)
        if self._state is not previous:
            log.debug(
                "connection_state_changed",
                policy=self.policy.value,
                old=previous.value,
                new=self._state.value,
            )
        for effect in effects:
            self._apply(effect)

    def _apply(self, effect: Effect) -> None:
        if isinstance(effect, OpenConnection):
            self._open(effect.url)
        elif isinstance(effect, CloseConnection):
            if self._connection is not None:
                self._connection.close()
        elif isinstance(effect, Render):
            self.display = effect.display
            if self.on_display is not None:
                self.on_display(effect.display)
        elif isinstance(effect, ScheduleRetry):
            self._schedule_retry(effect.delay)
        elif isinstance(effect, ReportError):
            log.warning(
                "connection_error",
                policy=self.policy.value,
                url=self._url,
                error=effect.reason,
            )

    def _open(self, url: str) -> None:
        log.info("connection_opening", policy=self.policy.value, url=url)
        connection = self._connection_factory(url, self)
        self._connection = connection
        try:
            connection.open()
        except Exception as e:
            self.on_error(e, connection=connection)

    def _schedule_retry(self, delay: float) -> None:
        loop = asyncio.get_running_loop()

        def fire() -> None:
            self._retry_handles.discard(handle)
            self._begin(Start())

        handle = loop.call_later(delay, fire)
        self._retry_handles.add(handle)
        log.info("retry_scheduled", policy=self.policy.value, delay=delay)


class AmbientFeed(ConnectionSupervisor):
    """Always-on supervisor feeding a passive display.

    Opened once on application start and kept alive for the life of the
    process. There is no backoff growth and no retry ceiling.
    """

    policy = RetryPolicy.AMBIENT

    def start(self) -> None:
        """Close any tracked connection and open a fresh one."""
        self._begin(Start())
