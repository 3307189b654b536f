"""`rgsm check` command.

Tell whether the project bundle still holds scripts that are not extracted.
Prints `not_extracted` or `extracted`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from rgsm.cli._common import CONFIG_HELP, PROJECT_HELP, cli_errors, project_settings
from rgsm.workspace.controller import ScriptsController


def register(app: typer.Typer) -> None:
    @app.command("check")
    def check(
        project: str = typer.Argument(..., help=PROJECT_HELP),
        bundle: Optional[str] = typer.Option(None, "--bundle", help="Bundle file (default: Data/Scripts.*)."),
        config: Optional[str] = typer.Option(None, "--config", help=CONFIG_HELP),
    ) -> None:
        """Check the extraction status of the project bundle."""
        project_p = Path(project)
        settings = project_settings(project_p, config)
        with cli_errors():
            status = ScriptsController(project_p, settings).check_scripts(bundle)
        typer.echo(status.value)
