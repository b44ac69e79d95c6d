"""
SSH Gateway

Reaches hosts listed in a host inventory over SSH.

This module uses `asyncssh` to support high concurrency without shelling
out to `ssh`/`scp`.
"""

import asyncio
import os
import shlex
from typing import Dict, List, Optional

import asyncssh
from loguru import logger

from ..errors import RemoteCommandError
from ..inventory import HostSpec, load_hosts
from .base import CommandResult, RemoteGateway, as_text


class SshGateway(RemoteGateway):
    """
    Executes commands on inventory hosts via SSH (asyncssh).

    Every call opens its own connection, so one slow host never blocks
    another.
    """

    def __init__(
        self,
        hosts: Dict[str, HostSpec],
        known_hosts: Optional[str] = None,
        connect_timeout: float = 30.0,
        keepalive_interval: float = 30.0,
        command_timeout: float = 300.0,
        retry: int = 2,
    ):
        """
        Initialize the gateway.

        Args:
            hosts: Inventory mapping host name to connection details
            known_hosts: Path to known_hosts file (or None to disable host key checks)
            connect_timeout: SSH connect timeout seconds
            keepalive_interval: SSH keepalive interval seconds
            command_timeout: Per-command timeout seconds
            retry: Connection retries after the first attempt
        """
        self.hosts = hosts
        self.known_hosts = known_hosts
        self.connect_timeout = connect_timeout
        self.keepalive_interval = keepalive_interval
        self.command_timeout = command_timeout
        self.retry = retry

    @classmethod
    def from_file(cls, hosts_file: str, **kwargs) -> "SshGateway":
        return cls(load_hosts(hosts_file), **kwargs)

    def _spec(self, host: str) -> HostSpec:
        spec = self.hosts.get(host)
        if spec is None:
            raise RemoteCommandError(f"Host {host} is not in the inventory")
        return spec

    async def _connect(self, host: str) -> asyncssh.SSHClientConnection:
        spec = self._spec(host)
        client_keys: Optional[List[str]] = None
        if spec.ssh_key_path:
            client_keys = [spec.ssh_key_path]

        return await asyncssh.connect(
            spec.ip,
            port=spec.port,
            username=spec.ssh_user,
            client_keys=client_keys,
            known_hosts=self.known_hosts,
            connect_timeout=self.connect_timeout,
            keepalive_interval=self.keepalive_interval,
        )

    async def run(self, host: str, command: str) -> CommandResult:
        last_exc: Optional[BaseException] = None
        for attempt in range(self.retry + 1):
            try:
                async with await self._connect(host) as conn:
                    res = await asyncio.wait_for(conn.run(command, check=False), timeout=self.command_timeout)
                    exit_status = res.exit_status if res.exit_status is not None else -1
                    return CommandResult(
                        host=host,
                        success=exit_status == 0,
                        stdout=as_text(res.stdout),
                        stderr=as_text(res.stderr),
                        return_code=int(exit_status),
                    )
            except RemoteCommandError as e:
                return CommandResult.failed(host, e)
            except (asyncio.TimeoutError, asyncssh.Error, OSError) as e:
                last_exc = e
                if attempt < self.retry:
                    logger.debug(f"ssh {host} failed (attempt {attempt + 1}), retrying: {e}")
                    await asyncio.sleep(1)

        return CommandResult.failed(host, last_exc if last_exc else "Unknown error")

    async def copy(self, host: str, local_path: str, remote_path: str, recursive: bool = True) -> None:
        last_exc: Optional[BaseException] = None
        for attempt in range(self.retry + 1):
            try:
                async with await self._connect(host) as conn:
                    remote_dir = os.path.dirname(remote_path.rstrip("/"))
                    if remote_dir:
                        await conn.run(f"mkdir -p {shlex.quote(remote_dir)}", check=False)
                    await asyncssh.scp(local_path, (conn, remote_path), recurse=recursive)
                    return
            except (asyncio.TimeoutError, asyncssh.Error, OSError) as e:
                last_exc = e
                if attempt < self.retry:
                    await asyncio.sleep(1)

        raise RemoteCommandError(f"Failed to copy {local_path} to {host}:{remote_path}: {last_exc}")

    async def address(self, host: str) -> str:
        return self._spec(host).ip
