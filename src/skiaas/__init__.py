"""
SKIaaS — compute instances on Azure as one logical operation.

Composes virtual network, security group, network interface, public IP,
virtual machine and post-boot scripts into a single create or delete call.

A smilinTux Open Source Project.
"""

import os

__version__ = "0.1.0"
__author__ = "smilinTux"

IAAS_HOME = os.environ.get("SKIAAS_HOME", "~/.skiaas")
