"""``detection-relay run`` — relay a JSON-lines record stream from stdin.

Each line read from stdin is parsed as a detection record and handed to
the DispatchRouter.  The command runs until stdin closes, then waits for
in-flight deliveries and the bulk queue to settle before exiting.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from rich.console import Console

from detection_relay.cli.commands._common import configure_logging, load_or_exit
from detection_relay.config import RelayConfig
from detection_relay.ingest import aiter_records
from detection_relay.routing.dispatcher import DispatchRouter

console = Console(stderr=True)


async def _relay(config: RelayConfig) -> tuple[int, int, dict[str, int]]:
    received = 0
    accepted = 0
    router = DispatchRouter.from_config(config)
    async with router:
        async for record in aiter_records():
            received += 1
            if router.on_record(record):
                accepted += 1
    return received, accepted, router.context.error_sink.counts


def run_cmd(
    config_path: Path = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a TOML configuration file.",
    ),
    log_level: str = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Override the configured log level (DEBUG, INFO, ...).",
    ),
) -> None:
    """Relay records from stdin to every configured target."""
    config = load_or_exit(config_path, console)
    configure_logging(log_level or config.log_level, console)

    try:
        received, accepted, errors = asyncio.run(_relay(config))
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted.[/yellow]")
        raise typer.Exit(code=130) from None

    console.print(
        f"[bold]Relayed[/bold] {accepted}/{received} records "
        f"([dim]{sum(errors.values())} errors[/dim])"
    )
    for kind, count in sorted(errors.items()):
        console.print(f"  [red]{kind}[/red]: {count}")
