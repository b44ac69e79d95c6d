"""
Machine Commands

Per-host actions that are not tied to one app: passing a docker command
through to every host, and creating, provisioning or destroying
docker-machine hosts.
"""

import shlex
from typing import List, Optional

from loguru import logger

from .errors import RemoteCommandError
from .remote.base import CommandResult, RemoteGateway
from .remote.docker_machine import DockerMachineGateway


def _check(res: CommandResult, what: str) -> str:
    if not res.success:
        raise RemoteCommandError(
            f"Failed to {what} machine {res.host}: {res.stderr.strip() or res.stdout.strip()}",
            stdout=res.stdout,
            stderr=res.stderr,
        )
    return res.stdout


class DockerPassthrough:
    """Runs ``docker <args...>`` on each host and echoes its output"""

    def __init__(self, gateway: RemoteGateway, args: List[str]):
        self.gateway = gateway
        self.command = "docker " + shlex.join(args)

    async def __call__(self, host: str, ordinal: int) -> str:
        res = await self.gateway.run(host, self.command)
        output = _check(res, "exec docker command on")
        with logger.contextualize(host=host):
            logger.info(output.rstrip() or "(no output)")
        return output


class MachineAction:
    """One docker-machine lifecycle action: ``create``, ``provision`` or ``destroy``"""

    ACTIONS = ("create", "provision", "destroy")

    def __init__(self, gateway: DockerMachineGateway, action: str, args: Optional[List[str]] = None):
        if action not in self.ACTIONS:
            raise ValueError(f"Unknown machine action {action}")
        self.gateway = gateway
        self.action = action
        self.args = list(args or [])

    async def __call__(self, host: str, ordinal: int) -> str:
        if self.action == "create":
            res = await self.gateway.create_machine(host, self.args)
        elif self.action == "provision":
            res = await self.gateway.provision_machine(host, self.args)
        else:
            res = await self.gateway.remove_machine(host)
        return _check(res, self.action)
