"""``assetdb resolve IDENTIFIER`` — resolve an identifier to bytes.

Writes the bytes to ``--output`` when given, otherwise prints a summary of
what was resolved.  Exits with code 2 when the asset is known to be absent.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.markup import escape

from assetdb.cli.context import EXIT_ABSENT, build_resolver, console, fail, get_config
from assetdb.core.errors import AssetDBError
from assetdb.models.assets import ResolvedAsset


async def _resolve(ctx: typer.Context, identifier: str, offline: bool) -> ResolvedAsset | None:
    async with build_resolver(get_config(ctx)) as resolver:
        return await resolver.resolve(identifier, cache_only=offline)


def resolve_cmd(
    ctx: typer.Context,
    identifier: str = typer.Argument(
        ...,
        help="Asset identifier: @package/hash, an absolute URL, or a bare path.",
    ),
    offline: bool = typer.Option(
        False,
        "--offline",
        help="Only use the local store; never touch the network.",
    ),
    output: Path = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the resolved bytes to this file.",
    ),
) -> None:
    """Resolve an asset identifier."""
    try:
        result = asyncio.run(_resolve(ctx, identifier, offline))
    except AssetDBError as exc:
        fail(f"[{exc.kind.value}] {exc}")
        return

    if result is None:
        console.print(f"[yellow]Not available:[/yellow] {escape(identifier)}")
        raise typer.Exit(code=EXIT_ABSENT)

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(result.data)
        console.print(f"[green]Wrote[/green] {result.size_bytes} bytes to {escape(str(output))}")
        return

    console.print(f"[bold]Identifier:[/bold] {escape(identifier)}")
    console.print(f"[bold]MIME type:[/bold]  {escape(result.mime_type)}")
    console.print(f"[bold]Size:[/bold]       {result.size_bytes} bytes")
    console.print(f"[bold]Source:[/bold]     {escape(result.source)}")
