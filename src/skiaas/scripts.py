"""
Remote script execution through VM extensions.

Azure's custom-script extension runs one command blob per apply and
skips a blob identical to the previous one. ``CustomScriptRunner``
prepends a fresh execution id when re-running so every call differs.
Providers with native re-run support can implement ``ScriptRunner``
without that trick.
"""

from __future__ import annotations

import logging
import uuid
from typing import List, Optional

from . import naming
from .models import InstanceScript, ScriptResult
from .providers.base import ProviderClient
from .providers.resources import ExtensionSpec, RemoteExtension, RemoteVirtualMachine

logger = logging.getLogger(__name__)

SCRIPT_EXTENSION_PUBLISHER = "Microsoft.Azure.Extensions"
SCRIPT_EXTENSION_TYPE = "CustomScript"
SCRIPT_EXTENSION_VERSION = "2.0"
SCRIPT_EXTENSION_CMD_KEY = "commandToExecute"
SCRIPT_SEPARATOR = ";"
SCRIPT_ID_MARKER = "echo script-ID"


def concatenate_scripts(scripts: List[str]) -> str:
    """Join scripts into one command blob, each followed by the separator."""
    return "".join(f"{script}{SCRIPT_SEPARATOR}" for script in scripts)


def script_extension(name: str, command: str) -> ExtensionSpec:
    """Custom-script extension descriptor running ``command``."""
    return ExtensionSpec(
        name=name,
        publisher=SCRIPT_EXTENSION_PUBLISHER,
        type=SCRIPT_EXTENSION_TYPE,
        version=SCRIPT_EXTENSION_VERSION,
        auto_upgrade_minor_version=True,
        settings={SCRIPT_EXTENSION_CMD_KEY: command},
    )


class ScriptRunner:
    """Runs a command blob on a VM through a provider extension."""

    def find_extension(self, vm: RemoteVirtualMachine) -> Optional[RemoteExtension]:
        raise NotImplementedError

    def install_and_run(self, vm: RemoteVirtualMachine, command: str) -> None:
        raise NotImplementedError

    def update_and_rerun(
        self, vm: RemoteVirtualMachine, extension: RemoteExtension, command: str,
    ) -> None:
        raise NotImplementedError


class CustomScriptRunner(ScriptRunner):
    """Azure custom-script extension runner."""

    def __init__(self, client: ProviderClient) -> None:
        self._client = client

    def find_extension(self, vm: RemoteVirtualMachine) -> Optional[RemoteExtension]:
        return next(
            (
                extension for extension in vm.extensions
                if extension.publisher == SCRIPT_EXTENSION_PUBLISHER
                and extension.type == SCRIPT_EXTENSION_TYPE
            ),
            None,
        )

    def install_and_run(self, vm: RemoteVirtualMachine, command: str) -> None:
        logger.info(
            "Installing script extension on %s and executing script: %s", vm.name, command,
        )
        self._client.install_extension(
            vm, script_extension(naming.script_extension_name(vm.name), command),
        )
        logger.debug("Installation of script extension on %s has been requested", vm.name)

    def update_and_rerun(
        self, vm: RemoteVirtualMachine, extension: RemoteExtension, command: str,
    ) -> None:
        # An unchanged command is not run again; a new id makes it differ.
        execution_id = uuid.uuid4()
        command = (
            f"{SCRIPT_ID_MARKER}{SCRIPT_SEPARATOR}"
            f"echo {execution_id}{SCRIPT_SEPARATOR}{command}"
        )
        logger.info("Executing script on %s: %s", vm.name, command)
        self._client.update_extension(
            vm, extension.name, {SCRIPT_EXTENSION_CMD_KEY: command},
        )
        logger.debug("Execution of script on %s has been requested", vm.name)


class RemoteScriptExecutor:
    """Executes scripts on running VMs.

    Args:
        runner: Extension mechanism to use.
    """

    def __init__(self, runner: ScriptRunner) -> None:
        self._runner = runner

    def execute_script(
        self, vm: RemoteVirtualMachine, instance_script: InstanceScript,
    ) -> List[ScriptResult]:
        """Run all scripts as one blob; return one empty result per script.

        The extension mechanism exposes no synchronous stdout/stderr, so
        output and error are always empty.
        """
        command = concatenate_scripts(instance_script.scripts)

        extension = self._runner.find_extension(vm)
        if extension is not None:
            self._runner.update_and_rerun(vm, extension, command)
        else:
            self._runner.install_and_run(vm, command)

        return [ScriptResult(instance_id=vm.vm_id) for _ in instance_script.scripts]
