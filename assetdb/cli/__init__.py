"""AssetDB CLI — Typer-based command-line interface.

Provides the ``assetdb`` command with subcommands for resolving identifiers,
installing and removing packages, listing the store, and building package
archives.

All output uses Rich for formatted terminal display.
"""
