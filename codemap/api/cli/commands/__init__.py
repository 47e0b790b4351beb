"""Command handlers for the codemap CLI."""
