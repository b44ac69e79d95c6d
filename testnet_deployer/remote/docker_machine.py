"""
docker-machine Gateway

Reaches hosts managed by ``docker-machine``. Every call is a structured
argv, so host names and command lines never pass through a local shell.
"""

import asyncio
from typing import List, Optional, Sequence

from loguru import logger

from ..errors import RemoteCommandError
from .base import CommandResult, RemoteGateway, as_text

DOCKER_MACHINE = "docker-machine"


async def _terminate(proc: asyncio.subprocess.Process) -> None:
    try:
        proc.kill()
    except ProcessLookupError:
        return
    await proc.wait()


class DockerMachineGateway(RemoteGateway):
    def __init__(self, binary: str = DOCKER_MACHINE, timeout: Optional[float] = None):
        self.binary = binary
        self.timeout = timeout

    async def _invoke(self, host: str, args: Sequence[str]) -> CommandResult:
        argv = [self.binary, *args]
        logger.debug(f"exec {' '.join(argv)}")
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            return CommandResult.failed(host, e)

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            await _terminate(proc)
            return CommandResult.failed(host, f"{argv[1]} timed out after {self.timeout}s")
        except asyncio.CancelledError:
            # the child must not outlive the host's deadline
            await _terminate(proc)
            raise
        return CommandResult(
            host=host,
            success=proc.returncode == 0,
            stdout=as_text(stdout),
            stderr=as_text(stderr),
            return_code=proc.returncode,
        )

    async def run(self, host: str, command: str) -> CommandResult:
        return await self._invoke(host, ["ssh", host, command])

    async def copy(self, host: str, local_path: str, remote_path: str, recursive: bool = True) -> None:
        args = ["scp"]
        if recursive:
            args.append("-r")
        args += [local_path, f"{host}:{remote_path}"]
        res = await self._invoke(host, args)
        if not res.success:
            raise RemoteCommandError(
                f"Failed to copy {local_path} to machine {host}", stdout=res.stdout, stderr=res.stderr
            )

    async def address(self, host: str) -> str:
        res = await self._invoke(host, ["ip", host])
        ip = res.stdout.strip()
        if not res.success or not ip:
            raise RemoteCommandError(f"Failed to get ip of machine {host}", stdout=res.stdout, stderr=res.stderr)
        return ip

    # ==================== Machine management ====================

    async def create_machine(self, host: str, args: List[str]) -> CommandResult:
        """``docker-machine create <args...> <host>``"""
        return await self._invoke(host, ["create", *args, host])

    async def provision_machine(self, host: str, args: List[str]) -> CommandResult:
        """``docker-machine provision <args...> <host>``"""
        return await self._invoke(host, ["provision", *args, host])

    async def remove_machine(self, host: str) -> CommandResult:
        return await self._invoke(host, ["rm", "-f", host])

