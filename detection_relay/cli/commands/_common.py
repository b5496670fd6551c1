"""Shared helpers for CLI commands: config loading and logging setup."""

from __future__ import annotations

import logging
import tomllib
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler

from detection_relay.config import RelayConfig, load_config


def load_or_exit(config_path: Path | None, console: Console) -> RelayConfig:
    """Load configuration, printing validation errors and exiting on failure."""
    if config_path is not None and not config_path.exists():
        console.print(f"[bold red]Config not found:[/bold red] {config_path}")
        raise typer.Exit(code=1)
    try:
        return load_config(config_path)
    except (ValidationError, tomllib.TOMLDecodeError) as exc:
        console.print(f"[bold red]Invalid configuration:[/bold red]\n{exc}")
        raise typer.Exit(code=1) from exc


def configure_logging(level: str, console: Console) -> None:
    """Install a single RichHandler on the root logger."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True,
    )
