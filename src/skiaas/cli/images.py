"""Image commands: list."""

from __future__ import annotations

import click
from rich.table import Table

from ._common import (
    build_connector,
    connector_errors,
    console,
    infrastructure_option,
    load_infrastructure,
)


def register_images_commands(main: click.Group) -> None:
    """Register the images command group."""

    @main.group()
    def images():
        """Custom images available to an infrastructure."""

    @images.command("list")
    @infrastructure_option
    def images_list(infrastructure_path: str, home: str):
        """List custom images."""
        infrastructure = load_infrastructure(infrastructure_path)
        with connector_errors():
            found = build_connector(home).get_all_images(infrastructure)

        if not found:
            console.print("\n  [dim]No custom images found.[/]\n")
            return

        table = Table(show_header=True, header_style="bold", box=None, padding=(0, 2))
        table.add_column("Name", style="bold cyan")
        table.add_column("ID", style="dim")
        for image in found:
            table.add_row(image.name, image.id)
        console.print()
        console.print(table)
        console.print()
