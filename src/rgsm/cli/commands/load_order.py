"""`rgsm load-order` command.

Rebuild the tree from `load_order.txt` plus whatever is on disk, rewrite the
file and print it.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from rgsm.bundle.load_order import LoadOrderStatus
from rgsm.cli._common import CONFIG_HELP, PROJECT_HELP, cli_errors, project_settings
from rgsm.workspace.controller import ScriptsController


def register(app: typer.Typer) -> None:
    @app.command("load-order")
    def load_order(
        project: str = typer.Argument(..., help=PROJECT_HELP),
        quiet: bool = typer.Option(False, "--quiet", "-q", help="Only print the number of entries."),
        config: Optional[str] = typer.Option(None, "--config", help=CONFIG_HELP),
    ) -> None:
        """Synchronize and print the load order."""
        project_p = Path(project)
        settings = project_settings(project_p, config)
        with cli_errors():
            ctrl = ScriptsController(project_p, settings)
            result = ctrl.open()
            count = ctrl.update_load_order()
        if result.status is LoadOrderStatus.EMPTY:
            typer.echo("warning: load order file was empty", err=True)
        if quiet:
            typer.echo(str(count))
            return
        for section in ctrl.root.nested_children():
            entry = ctrl.root.relative(section.path).as_posix()
            typer.echo(entry if section.is_loaded() else f"#{entry}")
