"""Detection relay CLI — Typer-based command-line interface.

Provides the ``detection-relay`` command with subcommands for running the
relay over a JSON-lines record stream, listing configured targets, and
checking DNS resolution of UDP targets.

All output uses Rich for formatted terminal display.
"""
