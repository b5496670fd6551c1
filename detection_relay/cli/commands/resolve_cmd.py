"""``detection-relay resolve`` — one DNS pass over the UDP targets.

Shows the address each UDP target resolves to, whether it is currently
usable, and the refresh interval the registry would pick next.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from detection_relay.cli.commands._common import load_or_exit
from detection_relay.core.error_sink import ErrorSink
from detection_relay.core.registry import TargetRegistry
from detection_relay.models.targets import UdpTarget

console = Console()


def resolve_cmd(
    config_path: Path = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a TOML configuration file.",
    ),
) -> None:
    """Resolve every UDP target hostname once and report the results."""
    config = load_or_exit(config_path, console)
    registry = TargetRegistry(
        [t for t in config.targets if isinstance(t, UdpTarget)],
        ErrorSink(debug=config.debug),
        invalid_refresh_seconds=config.dns_invalid_refresh_seconds,
        standard_refresh_seconds=config.dns_standard_refresh_seconds,
    )
    if not registry.targets:
        console.print("[dim]No UDP targets configured.[/dim]")
        return

    asyncio.run(registry.resolve_all())

    table = Table(title="UDP Target Resolution")
    table.add_column("Host", style="cyan")
    table.add_column("Port", justify="right")
    table.add_column("Address")
    table.add_column("Valid", justify="center")

    for target in registry.targets:
        resolved = registry.lookup(target)
        valid = "[green]Yes[/green]" if resolved.is_valid else "[red]No[/red]"
        table.add_row(target.host, str(target.port), resolved.address or "-", valid)

    console.print(table)
    console.print(f"Next refresh in [bold]{registry.next_delay():.0f}s[/bold]")
    if registry.has_invalid():
        raise typer.Exit(code=1)
