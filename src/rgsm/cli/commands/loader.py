"""`rgsm loader` command.

(Re)install the loader bundle in the project. A bundle that still holds
scripts is backed up under the backups folder first.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from rgsm.bundle.loader import LoaderConfig, render_loader_code
from rgsm.cli._common import CONFIG_HELP, PROJECT_HELP, cli_errors, project_settings
from rgsm.workspace.controller import ScriptsController


def register(app: typer.Typer) -> None:
    @app.command("loader")
    def loader(
        project: str = typer.Argument(..., help=PROJECT_HELP),
        bundle: Optional[str] = typer.Option(None, "--bundle", help="Bundle file (default: Data/Scripts.*)."),
        show: bool = typer.Option(False, "--show", help="Print the loader Ruby code and change nothing."),
        config: Optional[str] = typer.Option(None, "--config", help=CONFIG_HELP),
    ) -> None:
        """Install the loader bundle."""
        project_p = Path(project)
        settings = project_settings(project_p, config)
        if show:
            typer.echo(render_loader_code(LoaderConfig.from_settings(settings)), nl=False)
            return
        with cli_errors():
            ctrl = ScriptsController(project_p, settings)
            backup = ctrl.create_loader(bundle)
            if backup is not None:
                typer.echo(f"Backup: {backup}")
            typer.echo(f"Loader installed in {ctrl.bundle_path(bundle)}")
