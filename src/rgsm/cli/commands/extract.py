"""`rgsm extract` command.

Extract every script of the project bundle into the scripts folder, write
`load_order.txt`, then (unless `--no-loader`) replace the bundle with the
loader bundle, backing up the original first.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from rgsm.cli._common import CONFIG_HELP, PROJECT_HELP, cli_errors, project_settings
from rgsm.workspace.controller import ExtractionStatus, ScriptsController


def register(app: typer.Typer) -> None:
    @app.command("extract")
    def extract(
        project: str = typer.Argument(..., help=PROJECT_HELP),
        bundle: Optional[str] = typer.Option(None, "--bundle", help="Bundle file (default: Data/Scripts.*)."),
        loader: bool = typer.Option(True, "--loader/--no-loader", help="Install the loader bundle afterwards."),
        config: Optional[str] = typer.Option(None, "--config", help=CONFIG_HELP),
    ) -> None:
        """Extract the project bundle into the scripts folder."""
        project_p = Path(project)
        settings = project_settings(project_p, config)
        with cli_errors():
            ctrl = ScriptsController(project_p, settings)
            ctrl.open()
            status = ctrl.extract_scripts(bundle)
            if status is ExtractionStatus.NOT_EXTRACTED:
                typer.echo("Nothing to extract: the bundle only holds the loader.")
                return
            typer.echo(f"Extracted to {ctrl.scripts_path}")
            if loader:
                backup = ctrl.create_loader(bundle)
                if backup is not None:
                    typer.echo(f"Backup: {backup}")
                typer.echo(f"Loader installed in {ctrl.bundle_path(bundle)}")
