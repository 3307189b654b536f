"""`rgsm crash` command.

Show the crash report the loader writes when the game fails to load its
scripts. Accepts the report file itself or the project folder.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from rgsm.cli._common import CONFIG_HELP, project_settings
from rgsm.codecs.crash_report import read_crash_report


def register(app: typer.Typer) -> None:
    @app.command("crash")
    def crash(
        path: str = typer.Argument(..., help="Crash report file, or the project folder."),
        existing_only: bool = typer.Option(
            False, "--existing-only", help="Only show backtrace frames pointing at existing .rb files."
        ),
        config: Optional[str] = typer.Option(None, "--config", help=CONFIG_HELP),
    ) -> None:
        """Print the last game crash report."""
        p = Path(path)
        if p.is_dir():
            p = project_settings(p, config).game_log_path(p)
        if not p.is_file():
            typer.echo(f"No crash report at {p}")
            raise typer.Exit(code=0)
        try:
            report = read_crash_report(p)
        except ValueError as e:
            raise typer.BadParameter(str(e)) from e
        typer.echo(report.render(only_existing=existing_only), nl=False)
