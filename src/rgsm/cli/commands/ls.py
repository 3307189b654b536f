"""`rgsm ls` command.

List the entries of a scripts bundle as a table:
- position, section id, kind (script/folder/separator/loader) and name
- compressed and inflated sizes
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from rgsm.bundle.table import entries_frame, kind_counts, write_entries_csv
from rgsm.cli._common import cli_errors
from rgsm.codecs.rgss_bundle import read_bundle


def register(app: typer.Typer) -> None:
    @app.command("ls")
    def ls(
        bundle: str = typer.Argument(..., help="Path to Scripts.rxdata / .rvdata / .rvdata2."),
        csv: Optional[str] = typer.Option(None, "--csv", help="Write the table to this CSV file instead."),
    ) -> None:
        """List the sections stored in a bundle."""
        with cli_errors():
            entries = read_bundle(Path(bundle))

        df = entries_frame(entries)
        if csv:
            write_entries_csv(csv, df)
            typer.echo(str(csv))
            return

        if df.empty:
            typer.echo("(empty bundle)")
            return
        shown = df.loc[:, ["position", "section_id", "kind", "name", "code_bytes"]]
        typer.echo(shown.to_string(index=False))
        summary = ", ".join(f"{kind}={n}" for kind, n in kind_counts(df).items())
        typer.echo(f"{len(df)} entries ({summary})")
