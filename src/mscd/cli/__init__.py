"""Command-line interface for MSCD."""
