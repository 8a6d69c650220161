"""Main Typer application — imports and registers all CLI commands.

Entry point: ``assetdb`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

from pathlib import Path

import typer

from assetdb.cli.commands.pack_cmd import pack_cmd
from assetdb.cli.commands.package_cmds import clear_cmd, install_cmd, packages_cmd, remove_cmd
from assetdb.cli.commands.resolve_cmd import resolve_cmd
from assetdb.cli.context import configure_logging, fail, load_config

app = typer.Typer(
    name="assetdb",
    help="AssetDB: content-addressed asset cache backed by package repositories.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    store: Path = typer.Option(None, "--store", "-s", help="Path to the asset store database."),
    repo: list[str] = typer.Option(
        None, "--repo", "-r", help="Repository base URL (repeatable, in priority order)."
    ),
    virtual_base: list[str] = typer.Option(
        None, "--virtual-base", "-b", help="Virtual base URL for bare paths (repeatable)."
    ),
    log_level: str = typer.Option(None, "--log-level", help="Logging level."),
) -> None:
    """Shared options for every subcommand."""
    try:
        config = load_config(store, repo, virtual_base, log_level)
    except ValueError as exc:
        fail(f"Invalid configuration: {exc}")
        return
    configure_logging(config.log_level)
    ctx.obj = config


# Register subcommands
app.command(name="resolve", help="Resolve an asset identifier.")(resolve_cmd)
app.command(name="install", help="Install a package from the repositories.")(install_cmd)
app.command(name="remove", help="Remove an installed package.")(remove_cmd)
app.command(name="packages", help="List installed packages.")(packages_cmd)
app.command(name="clear", help="Empty the local asset store.")(clear_cmd)
app.command(name="pack", help="Build a package archive from a directory.")(pack_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
