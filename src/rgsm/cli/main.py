"""rgsm CLI entrypoint.

Commands live in `rgsm.cli.commands.*`, one module per command, each exposing
`register(app)`.
"""

from __future__ import annotations

import logging

import typer

app = typer.Typer(
    name="rgsm",
    add_completion=False,
    no_args_is_help=True,
    help="RGSS Script Manager: extract, edit and rebuild RPG Maker script bundles.",
)


def _configure_logging(verbose: int) -> None:
    if verbose <= 0:
        return
    level = logging.INFO if verbose == 1 else logging.DEBUG
    logger = logging.getLogger("rgsm")
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        logger.addHandler(handler)


@app.callback()
def _callback(
    verbose: int = typer.Option(0, "--verbose", "-v", count=True, help="Log to stderr (-v info, -vv debug)."),
) -> None:
    """rgsm CLI."""
    _configure_logging(verbose)


@app.command("version")
def version() -> None:
    """Print the installed rgsm version."""
    from rgsm import __version__

    typer.echo(__version__)


def _register_commands() -> None:
    """Register CLI subcommands.

    Importing these modules must remain lightweight so `rgsm --help` is fast.
    """
    from rgsm.cli.commands import build as build_cmd
    from rgsm.cli.commands import check as check_cmd
    from rgsm.cli.commands import crash as crash_cmd
    from rgsm.cli.commands import extract as extract_cmd
    from rgsm.cli.commands import import_bundle as import_cmd
    from rgsm.cli.commands import load_order as load_order_cmd
    from rgsm.cli.commands import loader as loader_cmd
    from rgsm.cli.commands import ls as ls_cmd

    ls_cmd.register(app)
    check_cmd.register(app)
    extract_cmd.register(app)
    import_cmd.register(app)
    build_cmd.register(app)
    loader_cmd.register(app)
    load_order_cmd.register(app)
    crash_cmd.register(app)


_register_commands()
