"""Click subcommands for the cguard CLI."""
