"""`rgsm import` command.

Import the scripts of another bundle into the project's scripts folder,
inside an `Import from <bundle>` folder unless `--overwrite`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from rgsm.cli._common import CONFIG_HELP, PROJECT_HELP, cli_errors, project_settings
from rgsm.workspace.controller import ScriptsController


def register(app: typer.Typer) -> None:
    @app.command("import")
    def import_bundle(
        bundle: str = typer.Argument(..., help="Bundle file to import from."),
        project: str = typer.Option(..., "--project", help=PROJECT_HELP),
        overwrite: Optional[bool] = typer.Option(
            None,
            "--overwrite/--no-overwrite",
            help="Import into the scripts root instead of a dedicated folder (default from settings).",
        ),
        config: Optional[str] = typer.Option(None, "--config", help=CONFIG_HELP),
    ) -> None:
        """Import the sections of a bundle into the project."""
        project_p = Path(project)
        settings = project_settings(project_p, config)
        with cli_errors():
            ctrl = ScriptsController(project_p, settings)
            ctrl.open()
            count = ctrl.import_scripts(bundle, overwrite=overwrite)
        typer.echo(f"Imported {count} section(s)")
