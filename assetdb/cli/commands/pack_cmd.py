"""``assetdb pack DIRECTORY`` — build a package archive from a directory."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.markup import escape

from assetdb.cli.context import console, fail, get_config
from assetdb.core.packer import build_package


def pack_cmd(
    ctx: typer.Context,
    directory: Path = typer.Argument(..., help="Directory holding the package files."),
    name: str = typer.Option(..., "--name", "-n", help="Human-readable package name."),
    parent: str = typer.Option(None, "--parent", help="Id of the parent package."),
    output: Path = typer.Option(
        Path("."), "--output", "-o", help="Directory to write the archive into."
    ),
) -> None:
    """Build a content-addressed package archive."""
    config = get_config(ctx)
    try:
        built = build_package(
            directory, name=name, parent=parent, manifest_name=config.manifest_name
        )
    except (FileNotFoundError, ValueError) as exc:
        fail(str(exc))
        return

    dest = built.write(output, config.archive_ext)
    console.print(
        f"[green]Built[/green] {escape(str(dest))} "
        f"[dim]({len(built.manifest.files)} files)[/dim]"
    )
    # Print the package id plainly for scripting
    console.print(built.package_id)
