"""
skiaas CLI — provision and manage Azure instances from the shell.

Each command group lives in its own module and is registered on the
main Click group below.

Entry point: skiaas.cli:main
"""

from __future__ import annotations

import logging

import click

from .. import __version__


@click.group()
@click.version_option(version=__version__, prog_name="skiaas")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def main(verbose: bool):
    """skiaas — Azure instance provisioning.

    \b
    Create, inspect and delete virtual machines together with the
    networks, security groups and public IPs they need.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
    )
    logging.getLogger("azure").setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# Register all command groups
# ---------------------------------------------------------------------------

from .instances import register_instances_commands
from .public_ip import register_public_ip_commands
from .images import register_images_commands

register_instances_commands(main)
register_public_ip_commands(main)
register_images_commands(main)
