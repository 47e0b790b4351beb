"""Command-line interface for codemap."""
