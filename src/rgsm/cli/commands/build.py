"""`rgsm build` command.

Pack the scripts folder (in load order) back into a standalone bundle, e.g.
to ship the game without the external scripts.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from rgsm.cli._common import CONFIG_HELP, PROJECT_HELP, cli_errors, project_settings
from rgsm.workspace.controller import ScriptsController


def register(app: typer.Typer) -> None:
    @app.command("build")
    def build(
        project: str = typer.Argument(..., help=PROJECT_HELP),
        out: str = typer.Option(..., "--out", help="Output bundle file path."),
        enabled_only: bool = typer.Option(False, "--enabled-only", help="Leave disabled sections out."),
        config: Optional[str] = typer.Option(None, "--config", help=CONFIG_HELP),
    ) -> None:
        """Build a bundle from the scripts folder."""
        project_p = Path(project)
        settings = project_settings(project_p, config)
        with cli_errors():
            ctrl = ScriptsController(project_p, settings)
            ctrl.open()
            sections = None
            if enabled_only:
                sections = [s for s in ctrl.root.nested_children() if s.is_loaded()]
            ctrl.create_bundle(Path(out), sections)
        typer.echo(str(out))
