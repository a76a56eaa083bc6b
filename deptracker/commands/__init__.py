"""CLI subcommands for deptracker."""
