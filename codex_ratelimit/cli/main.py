"""
CLI interface for Codex Rate Limit.

Renders the latest rate-limit snapshot in the terminal.
"""

import json
import sys
import time
from dataclasses import asdict
from datetime import datetime
from typing import Any, Dict, Optional

import typer
import yaml
from rich.console import Console
from rich.table import Table

from codex_ratelimit.config.loader import AppConfig, ColorConfig, load_config
from codex_ratelimit.core.rate_limits import NormalizedRateLimitWindow
from codex_ratelimit.core.snapshot import QueryOutcome, UsageSnapshot, get_rate_limit_data
from codex_ratelimit.core.token_counter import format_token_usage
from codex_ratelimit.logging_config import setup_logging
from codex_ratelimit.scheduler import RefreshScheduler

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

WINDOW_TITLES = {
    "primary": "5-Hour Session",
    "secondary": "Weekly Limit",
}


def _load_config_or_exit(config_path: Optional[str]) -> AppConfig:
    try:
        return load_config(config_path)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Error loading configuration:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


def _query(config: AppConfig, session_path: Optional[str]) -> QueryOutcome:
    return get_rate_limit_data(session_path or config.session_path or None)


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    """Codex Rate Limit CLI."""
    if ctx.invoked_subcommand is None:
        console.print("Codex Rate Limit - Use --help to see available commands")


@app.command()
def status(
    session_path: Optional[str] = typer.Option(
        None,
        "--session-path",
        "-s",
        help="Session log root (defaults to ~/.codex/sessions)"
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to YAML configuration file"
    ),
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print the snapshot as JSON"
    )
):
    """Show current Codex rate-limit usage.

    Reads the latest token_count event from the session logs. The log
    files are never modified.
    """
    config = _load_config_or_exit(config_path)
    setup_logging(config.log_level, config.log_format.value, config.enable_logging)

    outcome = _query(config, session_path)
    if as_json:
        typer.echo(json.dumps(outcome_to_dict(outcome), indent=2))
    elif outcome.found:
        _display_snapshot(outcome.snapshot, config.color)
    else:
        _display_failure(outcome)

    sys.exit(EXIT_CODE_PASS if outcome.found else EXIT_CODE_FAIL)


@app.command()
def watch(
    interval: Optional[int] = typer.Option(
        None,
        "--interval",
        "-i",
        help="Refresh interval in seconds (minimum 5)"
    ),
    session_path: Optional[str] = typer.Option(
        None,
        "--session-path",
        "-s",
        help="Session log root (defaults to ~/.codex/sessions)"
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to YAML configuration file"
    )
):
    """Refresh the rate-limit status periodically until interrupted."""
    config = _load_config_or_exit(config_path)
    setup_logging(config.log_level, config.log_format.value, config.enable_logging)

    def _render(outcome: QueryOutcome) -> None:
        console.clear()
        if outcome.found:
            _display_snapshot(outcome.snapshot, config.color)
        else:
            _display_failure(outcome)

    scheduler = RefreshScheduler(
        refresh=lambda: _query(config, session_path),
        interval_seconds=interval if interval is not None else config.refresh_interval,
        on_result=_render,
        on_error=lambda e: console.print(f"[red]Update failed:[/] {str(e)}"),
    )
    scheduler.start()
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        scheduler.stop()
        sys.exit(EXIT_CODE_PASS)


@app.command("config")
def show_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to YAML configuration file"
    )
):
    """Show the effective configuration."""
    config = _load_config_or_exit(config_path)
    table = Table(title="Configuration")
    table.add_column("Setting")
    table.add_column("Value")
    table.add_row("session_path", config.session_path or "(default)")
    table.add_row("refresh_interval", f"{config.refresh_interval}s")
    table.add_row("enable_logging", str(config.enable_logging))
    table.add_row("log_level", config.log_level)
    table.add_row("log_format", config.log_format.value)
    table.add_row("color.enable", str(config.color.enable))
    table.add_row("color.warning_threshold", f"{config.color.warning_threshold:g}")
    table.add_row("color.critical_threshold", f"{config.color.critical_threshold:g}")
    console.print(table)


def usage_style(percentage: float, colors: ColorConfig) -> str:
    """Rich style for a usage percentage under the configured thresholds."""
    if not colors.enable:
        return ""
    if percentage >= colors.critical_threshold:
        return "red"
    if percentage >= colors.warning_threshold:
        return "yellow"
    return "green"


def _format_percent(value: float) -> str:
    return f"{min(100.0, max(0.0, value)):.1f}%"


def _format_time(value: datetime) -> str:
    return value.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _display_window(title: str, window: NormalizedRateLimitWindow, colors: ColorConfig) -> None:
    table = Table(title=title, show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    if window.outdated:
        table.add_row("Usage", "N/A")
        table.add_row("Time Progress", "N/A")
        table.add_row("Reset", f"{_format_time(window.reset_time)} [dim]\\[OUTDATED][/]")
    else:
        style = usage_style(window.used_percent, colors)
        usage = _format_percent(window.used_percent)
        table.add_row("Usage", f"[{style}]{usage}[/]" if style else usage)
        table.add_row("Time Progress", _format_percent(window.time_percent))
        table.add_row("Reset", _format_time(window.reset_time))
    console.print(table)


def _display_snapshot(snapshot: UsageSnapshot, colors: ColorConfig) -> None:
    """Display a snapshot with one table per reported window."""
    console.print("\n[bold]Codex Rate Limit[/bold]")
    console.print("-" * 40)

    for name, title in WINDOW_TITLES.items():
        window = getattr(snapshot, name)
        if window is not None:
            _display_window(title, window, colors)

    console.print("\n[bold]Token Usage[/bold]")
    console.print(f"Total: {format_token_usage(snapshot.total_usage)}")
    console.print(f"Last: {format_token_usage(snapshot.last_usage)}")
    console.print(f"\n[dim]Source: {snapshot.file_path}[/]")
    console.print(f"[dim]Updated: {_format_time(snapshot.current_time)}[/]")


def _display_failure(outcome: QueryOutcome) -> None:
    if outcome.unexpected:
        console.print(f"[red]Error:[/] {outcome.reason}")
    else:
        console.print(f"[bold yellow]No rate limit data found[/]: {outcome.reason}")


def _window_to_dict(window: Optional[NormalizedRateLimitWindow]) -> Optional[Dict[str, Any]]:
    if window is None:
        return None
    return {
        "used_percent": window.used_percent,
        "time_percent": window.time_percent,
        "reset_time": window.reset_time.isoformat(),
        "outdated": window.outdated,
        "window_minutes": window.window_minutes,
    }


def outcome_to_dict(outcome: QueryOutcome) -> Dict[str, Any]:
    """JSON-serializable view of a query outcome."""
    if not outcome.found:
        return {"found": False, "error": outcome.reason, "unexpected": outcome.unexpected}

    snapshot = outcome.snapshot
    return {
        "found": True,
        "data": {
            "file_path": str(snapshot.file_path),
            "record_timestamp": snapshot.record_timestamp.isoformat(),
            "current_time": snapshot.current_time.isoformat(),
            "total_usage": asdict(snapshot.total_usage),
            "last_usage": asdict(snapshot.last_usage),
            "primary": _window_to_dict(snapshot.primary),
            "secondary": _window_to_dict(snapshot.secondary),
            "notes": list(snapshot.notes),
        },
    }


if __name__ == "__main__":
    app()
