"""Main Typer application.

Entry point: ``pgwarden`` (configured via pyproject.toml project.scripts).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from pgwarden import __version__
from pgwarden.config import WardenSettings, load_settings
from pgwarden.core.orchestrator import Orchestrator, run_backup_cycle
from pgwarden.core.run_log import ROOT_LOGGER_NAME
from pgwarden.errors import ConfigurationError

console = Console()

app = typer.Typer(
    name="pgwarden",
    help="pgwarden: scheduled PostgreSQL backup, upload and retention.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


def _env_file_option() -> Any:
    return typer.Option(
        None, "--env-file", "-e", help="Read PGWARDEN_* settings from this file."
    )


def _settings(env_file: Optional[Path], **overrides: object) -> WardenSettings:
    try:
        return load_settings(env_file, **overrides)
    except ConfigurationError as exc:
        console.print(f"[bold red]Configuration error:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc


def _attach_console_handler(level: str) -> RichHandler:
    handler = RichHandler(console=console, show_time=True, show_path=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level)
    root.addHandler(handler)
    return handler


@app.command(name="run", help="Run one full backup cycle.")
def run_cmd(
    env_file: Optional[Path] = _env_file_option(),
    backup_dir: Optional[Path] = typer.Option(
        None, "--backup-dir", "-d", help="Override the local backup directory."
    ),
    retention_days: Optional[int] = typer.Option(
        None, "--retention-days", "-r", help="Override the retention window in days."
    ),
    sequential: bool = typer.Option(
        False, "--sequential", help="Run sibling tasks one after another."
    ),
) -> None:
    """Preflight, back up, upload, notify and sweep.

    Exits 0 only when both artifacts were created and uploaded.
    """
    settings = _settings(
        env_file,
        backup_dir=backup_dir,
        retention_days=retention_days,
        parallel_stages=False if sequential else None,
    )
    handler = _attach_console_handler(settings.log_level)
    try:
        code = run_backup_cycle(settings)
    except OSError as exc:
        console.print(f"[bold red]Cannot run backup cycle:[/bold red] {exc}")
        code = 1
    finally:
        logging.getLogger(ROOT_LOGGER_NAME).removeHandler(handler)
    raise typer.Exit(code=code)


@app.command(name="check", help="Run the preflight checks only.")
def check_cmd(env_file: Optional[Path] = _env_file_option()) -> None:
    """Verify the backup directory and database reachability.

    No backup is taken and no notification is sent.
    """
    settings = _settings(env_file)
    result = Orchestrator(settings).check()

    if result.success:
        body = "\n".join([
            "[bold green]Pre-flight checks passed[/bold green]",
            "",
            f"[bold]Server:[/bold]      {settings.maintenance_connection}",
            f"[bold]Backup dir:[/bold]  {settings.backup_dir}",
        ])
        border = "green"
    else:
        body = "\n".join([
            "[bold red]Pre-flight checks failed[/bold red]",
            "",
            result.detail,
        ])
        border = "red"

    console.print(Panel(body, title="[bold]pgwarden check[/bold]", border_style=border))
    raise typer.Exit(code=0 if result.success else 1)


@app.command(name="show-config", help="Show the effective settings.")
def show_config_cmd(env_file: Optional[Path] = _env_file_option()) -> None:
    """Print every setting, with secrets masked."""
    settings = _settings(env_file)

    table = Table(title=f"pgwarden {__version__} settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for name, value in settings.masked().items():
        table.add_row(name, value)
    table.add_row("remote_location", settings.remote_location, style="dim")
    table.add_row(
        "retention_patterns (effective)",
        ", ".join(settings.effective_retention_patterns),
        style="dim",
    )
    console.print(table)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
