"""TUI package for statpanel."""

from statpanel.tui.app import StatpanelApp, run_tui

__all__ = ["StatpanelApp", "run_tui"]
