"""Shared CLI plumbing — configuration, logging and resolver construction."""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from assetdb.config import AssetDBConfig
from assetdb.core.content_store import ContentStore
from assetdb.core.resolver import AssetResolver

console = Console()
err_console = Console(stderr=True)

EXIT_ERROR = 1
EXIT_ABSENT = 2


def load_config(
    store: Path | None,
    repos: list[str] | None,
    virtual_bases: list[str] | None,
    log_level: str | None,
) -> AssetDBConfig:
    """Build the effective config: environment first, CLI flags on top."""
    overrides: dict[str, object] = {}
    if store is not None:
        overrides["store_path"] = store
    if repos:
        overrides["repositories"] = repos
    if virtual_bases:
        overrides["virtual_bases"] = virtual_bases
    if log_level:
        overrides["log_level"] = log_level
    return AssetDBConfig(**overrides)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def get_config(ctx: typer.Context) -> AssetDBConfig:
    if isinstance(ctx.obj, AssetDBConfig):
        return ctx.obj
    return AssetDBConfig()


def build_resolver(config: AssetDBConfig) -> AssetResolver:
    return AssetResolver.from_config(config)


def open_store(ctx: typer.Context) -> ContentStore:
    """Open the content store alone, for commands that never touch the network."""
    return ContentStore(get_config(ctx).store_path)


def fail(message: str, code: int = EXIT_ERROR) -> None:
    """Print *message* literally (never as markup) and exit with *code*."""
    err_console.print(f"[bold red]Error:[/bold red] {escape(message)}")
    raise typer.Exit(code=code)
