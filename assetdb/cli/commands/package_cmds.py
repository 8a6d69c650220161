"""Package management commands: ``install``, ``remove``, ``packages``, ``clear``."""

from __future__ import annotations

import asyncio

import typer
from rich.markup import escape
from rich.table import Table

from assetdb.cli.context import build_resolver, console, fail, get_config, open_store
from assetdb.core.errors import AssetDBError
from assetdb.models.packages import PackageRecord


async def _install(ctx: typer.Context, package_id: str) -> PackageRecord:
    async with build_resolver(get_config(ctx)) as resolver:
        return await resolver.install_package(package_id)


def install_cmd(
    ctx: typer.Context,
    package_id: str = typer.Argument(..., help="Package id to install."),
) -> None:
    """Install a package (and its parents) from the configured repositories."""
    try:
        record = asyncio.run(_install(ctx, package_id))
    except AssetDBError as exc:
        retry = " (retryable)" if exc.kind.is_retryable else ""
        fail(f"[{exc.kind.value}] {exc}{retry}")
        return
    console.print(
        f"[green]Installed[/green] {escape(record.name)} "
        f"[dim]({escape(record.id)}, {len(record.manifest.files)} files)[/dim]"
    )


def remove_cmd(
    ctx: typer.Context,
    package_id: str = typer.Argument(..., help="Package id to remove."),
) -> None:
    """Remove an installed package and release its assets."""
    store = open_store(ctx)
    if not store.delete_package(package_id):
        fail(f"Package {package_id} is not installed")
    console.print(f"[green]Removed[/green] {escape(package_id)}")


def packages_cmd(ctx: typer.Context) -> None:
    """List installed packages."""
    store = open_store(ctx)
    records = store.list_packages()
    if not records:
        console.print("[dim]No packages installed.[/dim]")
        return

    table = Table(title="Installed Packages")
    table.add_column("Id", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Parent")
    table.add_column("Files", justify="right")
    table.add_column("Acquired")

    for record in records:
        table.add_row(
            escape(record.id),
            escape(record.manifest.name),
            escape(record.manifest.parent or "") or "[dim]-[/dim]",
            str(len(record.manifest.files)),
            record.acquired_at.strftime("%Y-%m-%d %H:%M:%S"),
        )

    console.print(table)
    console.print(f"[dim]{store.asset_count()} assets in {escape(str(store.db_path))}[/dim]")


def clear_cmd(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Delete every asset and package from the local store."""
    if not yes and not typer.confirm("Delete every asset and package?"):
        raise typer.Abort()
    store = open_store(ctx)
    store.clear_all()
    console.print("[green]Store cleared.[/green]")
