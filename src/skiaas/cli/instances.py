"""Instance commands: create, list, delete, script."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Tuple

import click

from ..models import (
    Hardware,
    Instance,
    InstanceCredentials,
    InstanceScript,
    Options,
    Tag,
)
from ._common import (
    build_connector,
    connector_errors,
    console,
    infrastructure_option,
    load_infrastructure,
    print_instances,
)


def _parse_labels(labels: Tuple[str, ...]) -> list:
    tags = []
    for label in labels:
        key, sep, value = label.partition("=")
        if not key or not sep:
            raise click.BadParameter(f"expected KEY=VALUE, got '{label}'", param_hint="--label")
        tags.append(Tag(key=key, value=value))
    return tags


def register_instances_commands(main: click.Group) -> None:
    """Register the instances command group."""

    @main.group()
    def instances():
        """Create, inspect and delete virtual machines.

        \b
        Create:  skiaas instances create -i infra.yaml --tag web --image ubuntu-22
        List:    skiaas instances list -i infra.yaml
        Delete:  skiaas instances delete -i infra.yaml <instance-id>
        Script:  skiaas instances script -i infra.yaml <instance-id> -c "uptime"
        """

    @instances.command("create")
    @infrastructure_option
    @click.option("--tag", required=True, help="Instance name; replicas get a numeric suffix.")
    @click.option("--image", required=True, help="Custom image name or id.")
    @click.option("--number", "-n", default=1, type=click.IntRange(min=1), help="Replica count.")
    @click.option("--size", default=None, help="VM size (e.g. Standard_D2s_v3).")
    @click.option("--resource-group", default=None, help="Target resource group.")
    @click.option("--region", default=None, help="Target region label or name.")
    @click.option("--subnet", default=None, help="Existing virtual network name or id.")
    @click.option("--cidr", default=None, help="CIDR for a new private network.")
    @click.option("--security-group", "security_groups", multiple=True, help="Existing security group.")
    @click.option("--public-ip", default=None, help="Existing public IP for the first replica.")
    @click.option("--dynamic-ip", is_flag=True, help="Allocate dynamic instead of static public IPs.")
    @click.option("--username", default=None, help="Admin username.")
    @click.option("--password", default=None, help="Admin password.")
    @click.option("--public-key-file", default=None, type=click.Path(exists=True, dir_okay=False),
                  help="SSH public key for Linux images.")
    @click.option("--script", "-c", "scripts", multiple=True, help="Command to run at boot.")
    @click.option("--label", "labels", multiple=True, help="Extra KEY=VALUE tag.")
    def instances_create(
        infrastructure_path: str, home: str, tag: str, image: str, number: int,
        size: Optional[str], resource_group: Optional[str], region: Optional[str],
        subnet: Optional[str], cidr: Optional[str], security_groups: Tuple[str, ...],
        public_ip: Optional[str], dynamic_ip: bool, username: Optional[str],
        password: Optional[str], public_key_file: Optional[str],
        scripts: Tuple[str, ...], labels: Tuple[str, ...],
    ):
        """Create one or more instances from a custom image.

        Example:

            skiaas instances create -i infra.yaml --tag web --image ubuntu-22 -n 2
        """
        infrastructure = load_infrastructure(infrastructure_path)
        public_key = Path(public_key_file).read_text().strip() if public_key_file else None

        request = Instance(
            tag=tag,
            image=image,
            number=number,
            hardware=Hardware(type=size) if size else None,
            credentials=InstanceCredentials(
                username=username, password=password, public_key=public_key,
            ),
            init_script=InstanceScript(scripts=list(scripts)) if scripts else None,
            options=Options(
                resource_group=resource_group,
                region=region,
                subnet_id=subnet,
                private_network_cidr=cidr,
                security_group_names=list(security_groups),
                public_ip_address=public_ip,
                static_public_ip=False if dynamic_ip else None,
                tags=_parse_labels(labels),
            ),
        )

        with connector_errors():
            created = build_connector(home).create_instance(infrastructure, request)

        console.print(f"\n  [green]Created {len(created)} instance(s).[/]")
        print_instances(created)

    @instances.command("list")
    @infrastructure_option
    @click.option("--created", is_flag=True, help="Only instances created by this connector.")
    def instances_list(infrastructure_path: str, home: str, created: bool):
        """List instances of the infrastructure."""
        infrastructure = load_infrastructure(infrastructure_path)
        connector = build_connector(home)
        with connector_errors():
            if created:
                found = connector.get_created_instances(infrastructure)
            else:
                found = connector.get_all_instances(infrastructure)
        print_instances(found)

    @instances.command("delete")
    @infrastructure_option
    @click.argument("instance", required=False)
    @click.option("--by-tag", is_flag=True, help="Treat INSTANCE as a tag instead of an id.")
    @click.option("--all-created", is_flag=True, help="Delete every instance created by this connector.")
    def instances_delete(
        infrastructure_path: str, home: str, instance: Optional[str],
        by_tag: bool, all_created: bool,
    ):
        """Delete an instance and the resources only it was using.

        Example:

            skiaas instances delete -i infra.yaml web --by-tag
        """
        if not instance and not all_created:
            raise click.UsageError("give an INSTANCE or --all-created")

        infrastructure = load_infrastructure(infrastructure_path)
        connector = build_connector(home)
        with connector_errors():
            if all_created:
                deleted = connector.delete_created_instances(infrastructure)
                console.print(f"\n  [green]Deleted {len(deleted)} instance(s).[/]\n")
                return
            if by_tag:
                connector.delete_instance_by_tag(infrastructure, instance)
            else:
                connector.delete_instance(infrastructure, instance)
        console.print(f"\n  [green]Deleted[/] {instance}\n")

    @instances.command("script")
    @infrastructure_option
    @click.argument("instance")
    @click.option("--by-tag", is_flag=True, help="Treat INSTANCE as a tag instead of an id.")
    @click.option("--command", "-c", "commands", multiple=True, required=True,
                  help="Command to run; repeat for several.")
    def instances_script(
        infrastructure_path: str, home: str, instance: str,
        by_tag: bool, commands: Tuple[str, ...],
    ):
        """Run commands on a running instance.

        Example:

            skiaas instances script -i infra.yaml web --by-tag -c "apt-get update"
        """
        infrastructure = load_infrastructure(infrastructure_path)
        connector = build_connector(home)
        script = InstanceScript(scripts=list(commands))
        with connector_errors():
            if by_tag:
                results = connector.execute_script_on_instance_tag(infrastructure, instance, script)
            else:
                results = connector.execute_script_on_instance_id(infrastructure, instance, script)
        console.print(
            f"\n  [green]Submitted {len(results)} script(s)[/] to {instance}\n"
        )
