"""Shared utilities for all CLI command modules.

Provides the Rich console, the ``--infrastructure`` / ``--home`` options,
connector construction, and instance rendering.
"""

from __future__ import annotations

import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List

import click
import yaml
from rich.console import Console
from rich.table import Table

from .. import IAAS_HOME
from ..config import load_settings
from ..connector import AzureConnector
from ..errors import IaasError
from ..models import Infrastructure, Instance

console = Console()


def infrastructure_option(func):
    """Add the required ``--infrastructure`` and optional ``--home`` options."""
    func = click.option(
        "--home", default=IAAS_HOME, type=click.Path(),
        help="Connector home holding config/config.yaml.",
    )(func)
    return click.option(
        "--infrastructure", "-i", "infrastructure_path", required=True,
        type=click.Path(exists=True, dir_okay=False),
        help="YAML file describing the target infrastructure.",
    )(func)


def load_infrastructure(path: str) -> Infrastructure:
    """Read an Infrastructure from a YAML file, exiting on invalid content.

    Args:
        path: Path to the YAML file.

    Returns:
        Infrastructure: The validated infrastructure.
    """
    try:
        data = yaml.safe_load(Path(path).read_text()) or {}
        return Infrastructure(**data)
    except (yaml.YAMLError, ValueError, TypeError) as exc:
        console.print(f"\n  [red]Invalid infrastructure file {path}:[/] {exc}\n")
        sys.exit(1)


def build_connector(home: str) -> AzureConnector:
    return AzureConnector(settings=load_settings(Path(home)))


@contextmanager
def connector_errors() -> Iterator[None]:
    """Print connector errors in red and exit with status 1."""
    try:
        yield
    except IaasError as exc:
        console.print(f"\n  [red]Error:[/] {exc}\n")
        sys.exit(1)


def print_instances(instances: List[Instance]) -> None:
    """Render instances as a Rich table."""
    if not instances:
        console.print("\n  [dim]No instances found.[/]\n")
        return

    table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
    table.add_column("ID", style="dim")
    table.add_column("Tag", style="bold cyan")
    table.add_column("Status")
    table.add_column("Size")
    table.add_column("Public")
    table.add_column("Private")

    for instance in instances:
        network = instance.network
        table.add_row(
            instance.id or "",
            instance.tag or "",
            instance.status or "",
            instance.hardware.type if instance.hardware and instance.hardware.type else "",
            ", ".join(network.public_addresses) if network else "",
            ", ".join(network.private_addresses) if network else "",
        )

    console.print()
    console.print(table)
    console.print()
