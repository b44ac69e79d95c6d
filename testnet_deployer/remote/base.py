"""
Remote Command Gateway

Contract shared by the transports that reach a host: run a command line,
push files, and report the host's network address.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


def as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, str):
        return value
    return str(value)


@dataclass
class CommandResult:
    """Result of a remote command execution"""
    host: str
    success: bool
    stdout: str
    stderr: str
    return_code: int

    @classmethod
    def failed(cls, host: str, error: Any) -> "CommandResult":
        return cls(host=host, success=False, stdout="", stderr=as_text(error), return_code=-1)


class RemoteGateway(ABC):
    """
    Executes commands against a named host.

    Non-zero exit and transport failure are both reported as
    ``success=False``; ``run`` never raises for either.
    """

    @abstractmethod
    async def run(self, host: str, command: str) -> CommandResult:
        """Run a shell command line on the host"""

    @abstractmethod
    async def copy(self, host: str, local_path: str, remote_path: str, recursive: bool = True) -> None:
        """
        Copy a local file or directory to the host.

        Raises:
            RemoteCommandError: If the copy fails
        """

    @abstractmethod
    async def address(self, host: str) -> str:
        """
        Network address other nodes use to reach the host.

        Raises:
            RemoteCommandError: If the address cannot be resolved
        """
