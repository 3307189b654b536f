"""Shared CLI plumbing: settings resolution and error-to-exit-code mapping."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import typer

from rgsm.errors import RgsmError, exit_code_for_exception
from rgsm.settings import Settings, default_config_path, load_settings

PROJECT_HELP = "RPG Maker project folder (the one holding Game.exe and Data/)."
CONFIG_HELP = "Settings JSON file (default: <project>/.rgsm.json)."


def project_settings(project: Path, config: Optional[str]) -> Settings:
    path = Path(config) if config else default_config_path(project)
    try:
        return load_settings(path)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e


@contextmanager
def cli_errors() -> Iterator[None]:
    """Report library errors on stderr and exit with their exit code."""
    try:
        yield
    except (RgsmError, OSError) as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(code=exit_code_for_exception(e)) from e
