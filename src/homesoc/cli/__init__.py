"""Command-line interface for homesoc."""
