"""
Remote Module

Transports that run commands on, copy files to and resolve the address
of a named host.
"""

from .base import CommandResult, RemoteGateway
from .docker_machine import DockerMachineGateway
from .ssh import SshGateway

__all__ = [
    "CommandResult",
    "RemoteGateway",
    "DockerMachineGateway",
    "SshGateway",
]
