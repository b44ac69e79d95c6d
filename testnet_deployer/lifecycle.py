"""
Lifecycle Commands

Restart, stop, remove and port inspection of an app's containers. Each is
a short per-host sequence of container commands run through the fleet
coordinator.
"""

from typing import Dict, List

from loguru import logger

from . import docker_cmds
from .docker_cmds import APP, COMMON, DATA, NODE
from .errors import RemoteCommandError
from .remote.base import RemoteGateway


class CommandSequence:
    """
    Runs a fixed list of commands on a host.

    Every command is attempted even after one fails; the host then fails
    with an error listing each failed command.
    """

    def __init__(self, gateway: RemoteGateway, commands: List[str]):
        self.gateway = gateway
        self.commands = commands

    async def __call__(self, host: str, ordinal: int) -> List[str]:
        failed: List[str] = []
        with logger.contextualize(host=host):
            for command in self.commands:
                res = await self.gateway.run(host, command)
                if res.success:
                    logger.debug(f"ok: {command}")
                else:
                    logger.debug(f"failed: {command}: {res.stderr.strip()}")
                    failed.append(command)
        if failed:
            raise RemoteCommandError(f"{len(failed)} command(s) failed: {'; '.join(failed)}")
        return list(self.commands)


def _names(app: str, roles: List[str]) -> List[str]:
    return [docker_cmds.container_name(app, role) for role in roles]


def restart_commands(app: str, no_app: bool = False) -> List[str]:
    roles = [NODE] if no_app else [APP, NODE]
    return [docker_cmds.start_container(name) for name in _names(app, roles)]


def stop_commands(app: str, no_app: bool = False) -> List[str]:
    roles = [NODE] if no_app else [NODE, APP]
    return [docker_cmds.stop_container(name) for name in _names(app, roles)]


def rm_commands(app: str, force: bool = False, no_app: bool = False) -> List[str]:
    commands: List[str] = []
    if force:
        stop_roles = [NODE] if no_app else [DATA, NODE, APP]
        commands += [docker_cmds.stop_container(name) for name in _names(app, stop_roles)]
    rm_roles = [COMMON, NODE] if no_app else [COMMON, DATA, APP, NODE]
    commands += [docker_cmds.remove_container(name) for name in _names(app, rm_roles)]
    return commands


class PortsQuery:
    """Reads the published ports of an app's core container"""

    def __init__(self, gateway: RemoteGateway, app: str):
        self.gateway = gateway
        self.container = docker_cmds.container_name(app, NODE)

    async def __call__(self, host: str, ordinal: int) -> Dict[str, str]:
        res = await self.gateway.run(host, docker_cmds.port_map(self.container))
        if not res.success:
            raise RemoteCommandError(
                f"Failed to get the exposed ports on machine {host} for container {self.container}",
                stdout=res.stdout,
                stderr=res.stderr,
            )
        return docker_cmds.parse_port_map(res.stdout)
