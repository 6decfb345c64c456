"""Configuration system for statpanel."""

from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path

import tomlkit

DEFAULT_ENDPOINT_URL = "ws://127.0.0.1:3069/ws"
VALID_LOG_LEVELS = ("debug", "info", "warning", "error")


@dataclass
class ConnectionConfig:
    """Streaming connection configuration."""

    endpoint_url: str = DEFAULT_ENDPOINT_URL  # Metrics source WebSocket address
    reconnect_delay: float = 5.0  # Fixed delay before the ambient feed reconnects (seconds)
    open_timeout: float = 10.0  # Max seconds for the opening handshake
    probe_timeout: float = 5.0  # Max seconds `statpanel probe` waits for a snapshot


@dataclass
class LoggingConfig:
    """Log file configuration."""

    level: str = "info"
    log_max_bytes: int = 5 * 1024 * 1024  # Max log file size (5MB)
    log_backup_count: int = 3  # Number of backup log files to keep


@dataclass
class TUIColors:
    """Colors for the dashboard.

    Colors can be named colors ("red"), hex colors ("#50fa7b") or Rich styles
    ("bold red"). Default palette: Dracula theme.
    """

    ok: str = "#50fa7b"  # Dracula green - signal detected
    fail: str = "#ff5555"  # Dracula red - signal missing / error
    muted: str = "#6272a4"  # Dracula comment - labels and idle text
    border_connected: str = "#50fa7b"
    border_disconnected: str = "#ff5555"


@dataclass
class TUIConfig:
    """TUI-specific configuration."""

    colors: TUIColors = field(default_factory=TUIColors)


def _dataclass_to_table(obj: object) -> tomlkit.items.Table:
    """Convert a dataclass instance to a tomlkit Table recursively."""
    table = tomlkit.table()
    for f in fields(obj):  # type: ignore[arg-type]
        value = getattr(obj, f.name)
        if is_dataclass(value) and not isinstance(value, type):
            table.add(f.name, _dataclass_to_table(value))
        else:
            table.add(f.name, value)
    return table


@dataclass
class Config:
    """Main configuration container."""

    connection: ConnectionConfig = field(default_factory=ConnectionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    tui: TUIConfig = field(default_factory=TUIConfig)

    @property
    def config_dir(self) -> Path:
        """Configuration directory."""
        return Path.home() / ".config" / "statpanel"

    @property
    def config_path(self) -> Path:
        """Path to config file."""
        return self.config_dir / "config.toml"

    @property
    def state_dir(self) -> Path:
        """State directory for logs."""
        return Path.home() / ".local" / "state" / "statpanel"

    @property
    def log_path(self) -> Path:
        """JSON Lines log path."""
        return self.state_dir / "statpanel.log"

    def save(self, path: Path | None = None) -> None:
        """Save config to TOML file."""
        path = path or self.config_path
        path.parent.mkdir(parents=True, exist_ok=True)

        doc = tomlkit.document()
        for name in ("connection", "logging", "tui"):
            doc.add(name, _dataclass_to_table(getattr(self, name)))
            doc.add(tomlkit.nl())

        path.write_text(tomlkit.dumps(doc))

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Load config from TOML file, returning defaults for missing values.

        All defaults come from the dataclass definitions, so Config() and
        Config.load() agree when no file exists.
        """
        defaults = cls()
        path = path or defaults.config_path
        if not path.exists():
            return defaults

        try:
            with open(path) as f:
                data = tomlkit.load(f)
        except tomlkit.exceptions.TOMLKitError as e:
            raise ValueError(f"Failed to parse config file {path}: {e}") from e

        return cls(
            connection=_load_connection_config(data.get("connection", {})),
            logging=_load_logging_config(data.get("logging", {})),
            tui=_load_tui_config(data.get("tui", {})),
        )


def _load_connection_config(data: dict) -> ConnectionConfig:
    """Load connection config from TOML data, using dataclass defaults for missing fields."""
    defaults = ConnectionConfig()

    endpoint_url = data.get("endpoint_url", defaults.endpoint_url)
    reconnect_delay = data.get("reconnect_delay", defaults.reconnect_delay)
    open_timeout = data.get("open_timeout", defaults.open_timeout)
    probe_timeout = data.get("probe_timeout", defaults.probe_timeout)

    if not str(endpoint_url).startswith(("ws://", "wss://")):
        raise ValueError(f"endpoint_url must be a ws:// or wss:// URL, got {endpoint_url!r}")
    if reconnect_delay <= 0:
        raise ValueError(f"reconnect_delay must be > 0, got {reconnect_delay}")
    if open_timeout <= 0:
        raise ValueError(f"open_timeout must be > 0, got {open_timeout}")
    if probe_timeout <= 0:
        raise ValueError(f"probe_timeout must be > 0, got {probe_timeout}")

    return ConnectionConfig(
        endpoint_url=str(endpoint_url),
        reconnect_delay=float(reconnect_delay),
        open_timeout=float(open_timeout),
        probe_timeout=float(probe_timeout),
    )


def _load_logging_config(data: dict) -> LoggingConfig:
    """Load logging config from TOML data."""
    d = LoggingConfig()
    level = str(data.get("level", d.level)).lower()
    if level not in VALID_LOG_LEVELS:
        raise ValueError(f"Invalid log level: {level!r}. Must be one of {VALID_LOG_LEVELS}")
    return LoggingConfig(
        level=level,
        log_max_bytes=data.get("log_max_bytes", d.log_max_bytes),
        log_backup_count=data.get("log_backup_count", d.log_backup_count),
    )


def _load_tui_config(data: dict) -> TUIConfig:
    """Load TUI config from TOML data.

    Handles the nested [tui.colors] section with defaults.
    """
    colors_data = data.get("colors", {})
    c = TUIColors()
    return TUIConfig(
        colors=TUIColors(
            ok=colors_data.get("ok", c.ok),
            fail=colors_data.get("fail", c.fail),
            muted=colors_data.get("muted", c.muted),
            border_connected=colors_data.get("border_connected", c.border_connected),
            border_disconnected=colors_data.get("border_disconnected", c.border_disconnected),
        ),
    )
