"""Main Typer application — imports and registers all CLI commands.

Entry point: ``detection-relay`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import typer

from detection_relay.cli.commands.resolve_cmd import resolve_cmd
from detection_relay.cli.commands.run_cmd import run_cmd
from detection_relay.cli.commands.targets_cmd import targets_cmd

app = typer.Typer(
    name="detection-relay",
    help="Detection relay: forward radio-detection records to UDP, HTTP and store targets.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="run", help="Relay JSON-lines records read from stdin.")(run_cmd)
app.command(name="targets", help="List configured targets.")(targets_cmd)
app.command(name="resolve", help="Resolve UDP target hostnames once.")(resolve_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
