"""Live telemetry dashboard for statpanel.

Two independent connections feed the screen:
- The STATUS panel is driven by the user-toggled supervisor (press `c`).
- The LIVE panel is driven by the ambient feed, which connects on startup
  and keeps reconnecting on its own.
"""

from rich.table import Table
from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Horizontal
from textual.css.query import NoMatches
from textual.reactive import reactive
from textual.widgets import Footer, Static

from statpanel.config import Config
from statpanel.endpoint import EndpointResolver
from statpanel.render import (
    Connected,
    Disconnected,
    DisplayState,
    Error,
    feature_rows,
    format_amount,
    format_percent,
    format_rate,
    format_temp,
)
from statpanel.supervisor import AmbientFeed, ConnectionState, ConnectionSupervisor


class StatusPanel(Static):
    """Feature-detection table for the user-toggled connection."""

    DEFAULT_CSS = """
    StatusPanel {
        height: 100%;
        padding: 0 1;
        border: solid red;
        border-title-align: left;
    }
    """

    connected: reactive[bool] = reactive(False)

    def on_mount(self) -> None:
        """Set border title and initial state."""
        self.border_title = "STATUS"
        self.border_subtitle = "c: connect / disconnect"
        self.show_display(Disconnected(""))

    def watch_connected(self, connected: bool) -> None:
        """Update border color when connection state changes."""
        borders = self.app.config.tui.colors
        color = borders.border_connected if connected else borders.border_disconnected
        self.styles.border = ("solid", color)

    def show_display(self, display: DisplayState) -> None:
        """Render a display state as a two-column table."""
        colors = self.app.config.tui.colors
        table = Table.grid(padding=(0, 2))
        table.add_column(style=colors.muted)
        table.add_column()

        for row in feature_rows(display):
            color = colors.ok if all(row.checks) else colors.fail
            if row.label == "Status":
                cell = Text(" ".join(row.values), style=colors.fail)
            elif row.label == "WebSocket":
                cell = Text(f"{row.marks} {' '.join(row.values)}".rstrip(), style=color)
            else:
                values = "  ".join(row.values)
                cell = Text(f"{row.marks}  {values}".rstrip())
            table.add_row(row.label, cell)

        self.connected = isinstance(display, Connected)
        self.update(table)


class LivePanel(Static):
    """Live readings from the ambient feed."""

    DEFAULT_CSS = """
    LivePanel {
        height: 100%;
        padding: 0 1;
        border: solid $primary;
        border-title-align: left;
    }
    """

    def on_mount(self) -> None:
        """Set border title and initial state."""
        self.border_title = "LIVE"
        self.update("Waiting for connection...")

    def show_display(self, display: DisplayState) -> None:
        """Render the latest ambient reading, or the reconnect notice."""
        colors = self.app.config.tui.colors
        if not isinstance(display, Connected):
            label = "Connection error" if isinstance(display, Error) else "Disconnected"
            self.update(
                Text(
                    f"{label} {display.url}\nReconnecting automatically...".strip(),
                    style=colors.fail,
                )
            )
            self.border_subtitle = ""
            return

        s = display.snapshot
        table = Table.grid(padding=(0, 2))
        table.add_column(style=colors.muted)
        table.add_column()
        table.add_row("CPU", f"{format_percent(s.cpu_usage)}  {s.cpu_name or ''}".rstrip())
        table.add_row(
            "RAM",
            f"{format_percent(s.ram_usage)}  of {format_amount(s.ram_amount)}"
            if s.ram_amount
            else format_percent(s.ram_usage),
        )
        if s.gpu_available:
            table.add_row(
                "GPU",
                f"{format_percent(s.gpu_usage)}  {format_temp(s.gpu_temp)}  {s.gpu_name}",
            )
        else:
            table.add_row("GPU", Text("not detected", style=colors.muted))
        table.add_row(
            "Network",
            f"↓ {format_rate(s.network_down)}  ↑ {format_rate(s.network_up)}",
        )
        self.update(table)
        if s.active_connections is not None:
            suffix = "s" if s.active_connections != 1 else ""
            self.border_subtitle = f"{s.active_connections} client{suffix}"


class StatpanelApp(App):
    """Live telemetry dashboard."""

    CSS = """
    Screen {
        layout: vertical;
    }

    #panels {
        height: 1fr;
    }

    #panels > * {
        width: 1fr;
    }
    """

    BINDINGS = [
        ("c", "toggle_connection", "Connect/Disconnect"),
        ("q", "quit", "Quit"),
    ]

    def __init__(self, config: Config | None = None, resolver: EndpointResolver | None = None):
        super().__init__()
        self.config = config or Config.load()
        self._resolver = resolver
        self.supervisor: ConnectionSupervisor | None = None
        self.ambient: AmbientFeed | None = None

    def compose(self) -> ComposeResult:
        """Create the TUI layout."""
        yield Horizontal(
            StatusPanel(id="status"),
            LivePanel(id="live"),
            id="panels",
        )
        yield Footer()

    def on_mount(self) -> None:
        """Create both supervisors and start the ambient feed."""
        self.title = "statpanel"
        self.sub_title = "disconnected"
        self.supervisor = ConnectionSupervisor.from_config(
            self.config, self._on_status_display, resolver=self._resolver
        )
        self.ambient = AmbientFeed.from_config(
            self.config, self._on_live_display, resolver=self._resolver
        )
        self.ambient.start()

    def on_unmount(self) -> None:
        """Cleanup on shutdown."""
        if self.supervisor is not None:
            self.supervisor.stop()
        if self.ambient is not None:
            self.ambient.stop()

    def action_toggle_connection(self) -> None:
        """Connect or disconnect the STATUS panel."""
        if self.supervisor is None:
            return
        self.supervisor.toggle_connect()
        self._update_subtitle()

    def _update_subtitle(self) -> None:
        if self.supervisor is None:
            return
        state = self.supervisor.state
        if state is ConnectionState.OPEN:
            self.sub_title = f"live ({self.supervisor.url})"
        elif state is ConnectionState.CONNECTING:
            self.sub_title = "connecting..."
        else:
            self.sub_title = "disconnected"

    def _on_status_display(self, display: DisplayState) -> None:
        try:
            self.query_one("#status", StatusPanel).show_display(display)
        except NoMatches:
            pass
        self._update_subtitle()

    def _on_live_display(self, display: DisplayState) -> None:
        try:
            self.query_one("#live", LivePanel).show_display(display)
        except NoMatches:
            pass


def run_tui(config: Config | None = None, resolver: EndpointResolver | None = None) -> None:
    """Run the TUI application."""
    app = StatpanelApp(config, resolver)
    app.run()
