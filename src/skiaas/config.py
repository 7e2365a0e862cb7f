"""
Connector settings — defaults applied when a request leaves them out.

Loaded from ~/.skiaas/config/config.yaml (or $SKIAAS_HOME). Credentials
for new machines can also come from the environment so they never have
to be written to disk.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field

from . import IAAS_HOME

logger = logging.getLogger(__name__)


class ConnectorSettings(BaseModel):
    """Defaults and mandatory tag keys used by every operation."""

    connector_tag_key: str = Field(default="connector-iaas")
    connector_tag_value: str = Field(default="default-tag")
    infrastructure_tag_key: str = Field(default="infrastructure-id")
    default_username: str = Field(default="skiaas")
    default_password: str = Field(default="Sk1aas!Default")
    default_private_network_cidr: str = Field(default="10.0.0.0/24")
    default_vm_size: str = Field(default="Standard_D1_v2")
    default_static_public_ip: bool = Field(default=True)


def load_settings(home: Optional[Path] = None) -> ConnectorSettings:
    """Load connector settings from disk and the environment.

    Args:
        home: Override the connector home directory. Defaults to ~/.skiaas/.

    Returns:
        ConnectorSettings from config.yaml, or defaults.
    """
    home = (home or Path(IAAS_HOME)).expanduser()
    config_file = home / "config" / "config.yaml"

    data: dict = {}
    if config_file.exists():
        try:
            data = yaml.safe_load(config_file.read_text()) or {}
            ConnectorSettings(**data)
        except (yaml.YAMLError, ValueError, TypeError) as exc:
            logger.warning("Failed to load config %s: %s; using defaults", config_file, exc)
            data = {}

    if os.environ.get("SKIAAS_DEFAULT_USERNAME"):
        data["default_username"] = os.environ["SKIAAS_DEFAULT_USERNAME"]
    if os.environ.get("SKIAAS_DEFAULT_PASSWORD"):
        data["default_password"] = os.environ["SKIAAS_DEFAULT_PASSWORD"]

    settings = ConnectorSettings(**data)
    logger.debug("Loaded connector settings from %s", home)
    return settings
