"""``detection-relay targets`` — list configured targets."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from detection_relay.cli.commands._common import load_or_exit

console = Console()


def _describe(target: Any, store_node: str | None) -> str:
    if target.protocol == "udp":
        return f"{target.host}:{target.port}"
    if target.protocol == "search_index":
        return store_node or ""
    return target.url


def targets_cmd(
    config_path: Path = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a TOML configuration file.",
    ),
) -> None:
    """List record, proximity and digest targets with their resolved settings."""
    config = load_or_exit(config_path, console)

    table = Table(title="Configured Targets")
    table.add_column("Stream", style="cyan")
    table.add_column("Protocol", style="green")
    table.add_column("Destination")

    streams = (
        ("records", config.targets),
        ("proximity", config.proximity_targets),
        ("digest", config.digest_targets),
    )
    for stream, targets in streams:
        for target in targets:
            table.add_row(
                stream, target.protocol, _describe(target, config.store_node)
            )

    if table.row_count == 0:
        console.print("[dim]No targets configured.[/dim]")
        return
    console.print(table)
