"""CLI commands for statpanel."""

import click


def _load_config(url: str | None):
    """Load config, applying a --url override."""
    from statpanel.config import Config

    try:
        cfg = Config.load()
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    if url:
        if not url.startswith(("ws://", "wss://")):
            raise click.BadParameter("must be a ws:// or wss:// URL", param_hint="--url")
        cfg.connection.endpoint_url = url
    return cfg


@click.group()
@click.version_option(package_name="statpanel")
def main() -> None:
    """Live system-resource telemetry viewer."""
    pass


@main.command()
@click.option("--url", default=None, help="Override the metrics source address")
def tui(url: str | None) -> None:
    """Launch interactive dashboard."""
    from statpanel import logging as sp_logging
    from statpanel.config import Config
    from statpanel.tui import run_tui

    config = _load_config(url)
    if not config.config_path.exists():
        # Written without the --url override
        Config().save()
        sp_logging.config_created(str(config.config_path))
    sp_logging.configure(config, source="tui")
    run_tui(config)


@main.command()
@click.option("--url", default=None, help="Override the metrics source address")
@click.option("--timeout", "-t", default=None, type=float, help="Seconds to wait for a snapshot")
@click.option("--json", "as_json", is_flag=True, help="Print the raw snapshot as JSON")
def probe(url: str | None, timeout: float | None, as_json: bool) -> None:
    """Fetch one snapshot and show which metrics the source reports."""
    import asyncio
    import json

    from statpanel import logging as sp_logging
    from statpanel.endpoint import config_resolver
    from statpanel.probe import probe as run_probe
    from statpanel.render import Connected, feature_rows
    from statpanel.snapshot import snapshot_to_dict

    config = _load_config(url)
    timeout = timeout if timeout is not None else config.connection.probe_timeout
    resolver = config_resolver(config)
    sp_logging.configure(config, source="probe")

    if not as_json:
        sp_logging.connecting(config.connection.endpoint_url)
    display = asyncio.run(
        run_probe(resolver, timeout=timeout, open_timeout=config.connection.open_timeout)
    )

    if not isinstance(display, Connected):
        if display.url:
            sp_logging.connection_failed(display.url, "no snapshot received")
        else:
            sp_logging.endpoint_unavailable("resolver returned no address")
        raise SystemExit(1)

    if as_json:
        click.echo(json.dumps(snapshot_to_dict(display.snapshot), indent=2))
        return

    sp_logging.connected(display.url)
    for row in feature_rows(display):
        values = "  ".join(v for v in row.values if v)
        click.echo(f"{row.label:10} {row.marks}  {values}".rstrip())


@main.group()
def config() -> None:
    """Manage configuration."""
    pass


@config.command("show")
def config_show() -> None:
    """Display current configuration."""
    cfg = _load_config(None)

    click.echo(f"Config file: {cfg.config_path}")
    click.echo(f"Exists: {cfg.config_path.exists()}")
    click.echo()
    click.echo("[connection]")
    click.echo(f"  endpoint_url = {cfg.connection.endpoint_url}")
    click.echo(f"  reconnect_delay = {cfg.connection.reconnect_delay}")
    click.echo(f"  open_timeout = {cfg.connection.open_timeout}")
    click.echo(f"  probe_timeout = {cfg.connection.probe_timeout}")
    click.echo()
    click.echo("[logging]")
    click.echo(f"  level = {cfg.logging.level}")
    click.echo(f"  log_path = {cfg.log_path}")


@config.command("edit")
def config_edit() -> None:
    """Open config file in editor."""
    import os
    import subprocess

    cfg = _load_config(None)

    if not cfg.config_path.exists():
        cfg.save()
        click.echo(f"Created default config at {cfg.config_path}")

    editor = os.environ.get("EDITOR", "nano")
    subprocess.run([editor, str(cfg.config_path)])


@config.command("reset")
@click.confirmation_option(prompt="Reset config to defaults?")
def config_reset() -> None:
    """Reset configuration to defaults."""
    from statpanel.config import Config

    cfg = Config()
    cfg.save()
    click.echo(f"Config reset to defaults at {cfg.config_path}")
