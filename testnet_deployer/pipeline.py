"""
Per-Host Start Pipeline

Brings one host's container stack up in strictly ordered stages and
reports the validator identity and endpoint of its core process.
"""

import asyncio
import json
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Tuple

from loguru import logger

from . import docker_cmds
from .configs.settings import DeployerSettings
from .configs.types import NodeEndpoint, ProvisionedNode, Validator
from .errors import IdentityMismatch, PortMappingMissing, ProvisionTimeout, RemoteCommandError, StageError
from .poller import poll_for_output, poll_until_ready
from .remote.base import CommandResult, RemoteGateway
from .rpc import NodeRpcClient

RpcFactory = Callable[[str], NodeRpcClient]


class Stage(str, Enum):
    COMMON_CONTAINER = "common_container"
    COPY_FILES = "copy_files"
    DATA_SERVICE = "data_service"
    APP_SERVICE = "app_service"
    CORE_SERVICE = "core_service"
    IDENTITY = "identity"
    ENDPOINT = "endpoint"


@dataclass
class StartOptions:
    """Run-wide parameters shared by every host's pipeline"""
    app: str
    base_dir: str
    seeds: List[str] = field(default_factory=list)
    publish_all: bool = False
    no_app: bool = False


@dataclass
class _Progress:
    stage: Optional[Stage] = None


def parse_key(output: str) -> Any:
    """Decode ``show_validator`` output, which is JSON on current nodes"""
    try:
        return json.loads(output)
    except ValueError:
        return output.strip()


def _key_material(key: Any) -> str:
    # older nodes report hex as [type_byte, hex] or {type, data}; hex is case-insensitive
    if isinstance(key, list) and len(key) == 2:
        key = {"data": key[1]}
    if isinstance(key, dict):
        if isinstance(key.get("data"), str):
            return key["data"].strip().upper()
        if isinstance(key.get("value"), str):
            return key["value"].strip()
    if isinstance(key, str):
        return key.strip()
    return json.dumps(key, sort_keys=True)


def same_key(discovered: Any, confirmed: Any) -> bool:
    return discovered == confirmed or _key_material(discovered) == _key_material(confirmed)


class StartPipeline:
    """
    Drives one host from nothing to a running, identified core process.

    Stages run strictly in order; the first failure ends the host's run
    with a ``StageError`` naming the stage. The whole run is bounded by
    ``settings.host_deadline``.
    """

    def __init__(
        self,
        gateway: RemoteGateway,
        options: StartOptions,
        settings: Optional[DeployerSettings] = None,
        rpc_factory: Optional[RpcFactory] = None,
    ):
        self.gateway = gateway
        self.options = options
        self.settings = settings or DeployerSettings()
        if rpc_factory is None:
            timeout = self.settings.rpc_timeout
            rpc_factory = lambda address: NodeRpcClient(address, timeout=timeout)
        self.rpc_factory = rpc_factory

    async def __call__(self, host: str, ordinal: int) -> ProvisionedNode:
        progress = _Progress()
        deadline = self.settings.host_deadline
        with logger.contextualize(host=host):
            try:
                async with asyncio.timeout(deadline):
                    node = await self._run(host, progress)
            except TimeoutError as e:
                stage = progress.stage.value if progress.stage else None
                raise StageError(host, stage, ProvisionTimeout(f"host did not finish within {deadline}s")) from e
            logger.success(f"Node up: p2p {node.endpoint.p2p_addr}, rpc {node.endpoint.rpc_addr}")
            return node

    async def _run(self, host: str, progress: _Progress) -> ProvisionedNode:
        await self._stage(progress, host, Stage.COMMON_CONTAINER, self.start_common)
        await self._stage(progress, host, Stage.COPY_FILES, self.copy_files)
        # no-app mode runs the core against an in-process null app
        if not self.options.no_app:
            await self._stage(progress, host, Stage.DATA_SERVICE, self.start_data)
            await self._stage(progress, host, Stage.APP_SERVICE, self.start_app)
        await self._stage(progress, host, Stage.CORE_SERVICE, self.start_core)
        discovered = await self._stage(progress, host, Stage.IDENTITY, self.discover_identity)
        endpoint, pub_key = await self._stage(progress, host, Stage.ENDPOINT, self.resolve_endpoint, discovered)
        return ProvisionedNode(validator=Validator(id=host, pub_key=pub_key), endpoint=endpoint)

    async def _stage(
        self,
        progress: _Progress,
        host: str,
        stage: Stage,
        step: Callable[..., Awaitable[Any]],
        *args: Any,
    ) -> Any:
        progress.stage = stage
        with logger.contextualize(stage=stage.value):
            logger.debug("stage started")
            try:
                result = await step(host, *args)
            except Exception as e:
                logger.warning(f"stage failed: {e}")
                raise StageError(host, stage.value, e) from e
            logger.debug("stage done")
            return result

    async def _run_checked(self, host: str, command: str, what: str) -> CommandResult:
        res = await self.gateway.run(host, command)
        if not res.success:
            raise RemoteCommandError(
                f"Failed to {what} on machine {host}: {res.stderr.strip() or res.stdout.strip()}",
                stdout=res.stdout,
                stderr=res.stderr,
            )
        return res

    # ==================== Stages ====================

    async def start_common(self, host: str) -> None:
        await self._run_checked(host, docker_cmds.start_common(self.options.app, self.settings), "start common container")

    async def copy_files(self, host: str) -> None:
        base = self.options.base_dir
        s = self.settings
        # host-specific core files go last so they override the generic ones
        pushes = [
            (os.path.join(base, "data"), s.data_root),
            (os.path.join(base, "app"), s.app_root),
            (os.path.join(base, "core"), s.core_root),
            (os.path.join(base, host, "core"), s.core_root),
        ]
        for local_path, container_path in pushes:
            await self.push(host, local_path, container_path)

    async def push(self, host: str, local_path: str, container_path: str) -> None:
        """Copy a local directory's contents into the shared container"""
        app = self.options.app
        tmp = docker_cmds.temp_name()
        try:
            await self.gateway.copy(host, local_path, tmp, recursive=True)
            await self._run_checked(host, docker_cmds.copy_into_common(app, tmp, container_path), f"docker cp {local_path}")
            await self._run_checked(host, docker_cmds.chown(app, container_path, self.settings), f"chown {container_path}")
        finally:
            res = await self.gateway.run(host, docker_cmds.remove_path(tmp))
            if not res.success:
                logger.debug(f"Could not remove {tmp}: {res.stderr.strip()}")

    async def start_data(self, host: str) -> None:
        app = self.options.app
        await self._run_checked(host, docker_cmds.start_data(app, self.settings), "start data service")

        check_cmd = docker_cmds.file_exists(docker_cmds.container_name(app, docker_cmds.DATA), self.settings.data_socket)

        async def socket_exists() -> bool:
            return (await self.gateway.run(host, check_cmd)).success

        if not await poll_until_ready(socket_exists, self.settings.marker_poll):
            raise RemoteCommandError(f"Failed to start data service on machine {host} (timeout)")

    async def start_app(self, host: str) -> None:
        await self._run_checked(host, docker_cmds.start_app(self.options.app, self.settings), "start app service")

    async def start_core(self, host: str) -> None:
        opts = self.options
        cmd = docker_cmds.start_core(
            opts.app,
            host,
            opts.seeds,
            self.settings,
            publish_all=opts.publish_all,
            no_app=opts.no_app,
        )
        await self._run_checked(host, cmd, "start core service")

    async def discover_identity(self, host: str) -> Any:
        # give the container time to install the core binary
        await asyncio.sleep(self.settings.install_grace)

        cmd = docker_cmds.show_validator(self.options.app)

        def waiting(res: CommandResult, elapsed: float) -> None:
            logger.info(f"core not yet installed in {host}, waiting ({elapsed:.0f}s)")

        output = await poll_for_output(
            lambda: self.gateway.run(host, cmd),
            interval=self.settings.identity_interval,
            deadline=self.settings.identity_deadline,
            on_wait=waiting,
        )
        logger.info(f"validator for {host}: {output}")
        return parse_key(output)

    async def resolve_endpoint(self, host: str, discovered: Any) -> Tuple[NodeEndpoint, Any]:
        s = self.settings
        ip = await self.gateway.address(host)

        p2p_port, rpc_port = str(s.p2p_port), str(s.rpc_port)
        if self.options.publish_all:
            node = docker_cmds.container_name(self.options.app, docker_cmds.NODE)
            res = await self._run_checked(host, docker_cmds.port_map(node), f"read port map of {node}")
            ports = docker_cmds.parse_port_map(res.stdout)
            for port in (p2p_port, rpc_port):
                if port not in ports:
                    raise PortMappingMissing(host, int(port))
            p2p_port, rpc_port = ports[p2p_port], ports[rpc_port]

        endpoint = NodeEndpoint(p2p_addr=f"{ip}:{p2p_port}", rpc_addr=f"{ip}:{rpc_port}")
        pub_key = await self.confirm_identity(host, endpoint, discovered)
        return endpoint, pub_key

    async def confirm_identity(self, host: str, endpoint: NodeEndpoint, discovered: Any) -> Any:
        """Ask the status endpoint for the key; it must agree with ``discovered``"""
        client = self.rpc_factory(endpoint.rpc_addr)
        answers: List[Any] = []

        async def answered() -> bool:
            answers.append(await asyncio.to_thread(client.pub_key))
            return True

        if not await poll_until_ready(answered, self.settings.status_poll):
            raise IdentityMismatch(f"Error getting pub_key from {host} on {endpoint.rpc_addr}")

        pub_key = answers[-1]
        if not same_key(discovered, pub_key):
            raise IdentityMismatch(
                f"{host} reported {pub_key!r} on {endpoint.rpc_addr} but show_validator gave {discovered!r}"
            )
        return pub_key
