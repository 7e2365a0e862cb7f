"""Public IP commands: add, remove."""

from __future__ import annotations

from typing import Optional

import click

from ._common import (
    build_connector,
    connector_errors,
    console,
    infrastructure_option,
    load_infrastructure,
)


def register_public_ip_commands(main: click.Group) -> None:
    """Register the public-ip command group."""

    @main.group("public-ip")
    def public_ip():
        """Add or remove public IPs on running instances."""

    @public_ip.command("add")
    @infrastructure_option
    @click.argument("instance")
    @click.option("--by-tag", is_flag=True, help="Treat INSTANCE as a tag instead of an id.")
    @click.option("--address", default=None, help="Existing unattached address to reuse.")
    def public_ip_add(
        infrastructure_path: str, home: str, instance: str,
        by_tag: bool, address: Optional[str],
    ):
        """Attach a public IP, allocating a new one unless --address is given.

        Example:

            skiaas public-ip add -i infra.yaml web --by-tag
        """
        infrastructure = load_infrastructure(infrastructure_path)
        connector = build_connector(home)
        with connector_errors():
            if by_tag:
                ip = connector.add_public_ip_by_tag(infrastructure, instance, address)
            else:
                ip = connector.add_public_ip(infrastructure, instance, address)
        console.print(f"\n  [green]Public IP[/] {ip or '(pending)'} attached to {instance}\n")

    @public_ip.command("remove")
    @infrastructure_option
    @click.argument("instance")
    @click.option("--by-tag", is_flag=True, help="Treat INSTANCE as a tag instead of an id.")
    @click.option("--address", default=None, help="Address to remove.")
    def public_ip_remove(
        infrastructure_path: str, home: str, instance: str,
        by_tag: bool, address: Optional[str],
    ):
        """Remove one public IP, a secondary interface's first.

        Example:

            skiaas public-ip remove -i infra.yaml <instance-id> --address 52.1.2.3
        """
        infrastructure = load_infrastructure(infrastructure_path)
        connector = build_connector(home)
        with connector_errors():
            if by_tag:
                connector.remove_public_ip_by_tag(infrastructure, instance, address)
            else:
                connector.remove_public_ip(infrastructure, instance, address)
        console.print(f"\n  [green]Removed a public IP[/] from {instance}\n")
