"""Command-line entrypoints for the rollcall engine."""
