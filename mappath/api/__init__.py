"""Command-line entry points and scenario runner."""
