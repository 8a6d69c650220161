"""Individual ``assetdb`` subcommands."""
