"""One-shot probe: connect, take the first snapshot, disconnect."""

from __future__ import annotations

import asyncio

import structlog

from statpanel.endpoint import EndpointResolver
from statpanel.render import Connected, DisplayState, Error
from statpanel.supervisor import ConnectionState, ConnectionSupervisor

log = structlog.get_logger()


async def probe(
    resolver: EndpointResolver,
    timeout: float = 5.0,
    open_timeout: float = 10.0,
) -> DisplayState:
    """Fetch a single display state from the metrics source.

    Returns the first Connected or Error state. If nothing arrives within
    `timeout` seconds the probe gives up with Error(url).
    """
    loop = asyncio.get_running_loop()
    first: asyncio.Future[DisplayState] = loop.create_future()

    def on_display(display: DisplayState) -> None:
        if not first.done():
            first.set_result(display)

    supervisor = ConnectionSupervisor(resolver, on_display, open_timeout=open_timeout)
    supervisor.toggle_connect()

    try:
        display = await asyncio.wait_for(first, timeout=timeout)
    except asyncio.TimeoutError:
        log.warning("probe_timed_out", url=supervisor.url, timeout=timeout)
        display = Error(supervisor.url or "")
    finally:
        if supervisor.state is ConnectionState.OPEN:
            supervisor.toggle_connect()
        supervisor.stop()

    if isinstance(display, Connected):
        log.info("probe_succeeded", url=display.url)
    return display
