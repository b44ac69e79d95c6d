import json
from collections import defaultdict
from typing import Callable, Dict, List, Optional, Set, Tuple

import pytest

from testnet_deployer.configs.settings import DeployerSettings, PollSettings
from testnet_deployer.errors import RemoteCommandError
from testnet_deployer.remote.base import CommandResult, RemoteGateway
from testnet_deployer.rpc import NodeRpcError

Responder = Callable[[str, str], Optional[CommandResult]]


def validator_key(host: str) -> Dict[str, str]:
    return {"type": "ed25519", "data": f"KEY-{host.upper()}"}


def ok(host: str, stdout: str = "") -> CommandResult:
    return CommandResult(host=host, success=True, stdout=stdout, stderr="", return_code=0)


def failed(host: str, stderr: str = "boom") -> CommandResult:
    return CommandResult(host=host, success=False, stdout="", stderr=stderr, return_code=1)


class FakeGateway(RemoteGateway):
    """Records every call; nodes report ``validator_key(host)`` unless a responder overrides it"""

    def __init__(self, responders: Optional[List[Responder]] = None):
        self.responders = list(responders or [])
        self.ran: Dict[str, List[str]] = defaultdict(list)
        self.copies: List[Tuple[str, str, str]] = []
        self.fail_copy: Set[str] = set()
        self.unresolvable: Set[str] = set()

    async def run(self, host: str, command: str) -> CommandResult:
        self.ran[host].append(command)
        for responder in self.responders:
            res = responder(host, command)
            if res is not None:
                return res
        if "show_validator" in command:
            return ok(host, json.dumps(validator_key(host)) + "\n")
        if command.startswith("docker port"):
            return ok(host, "46656/tcp -> 0.0.0.0:32769\n46657/tcp -> 0.0.0.0:32770\n")
        return ok(host)

    async def copy(self, host: str, local_path: str, remote_path: str, recursive: bool = True) -> None:
        if host in self.fail_copy:
            raise RemoteCommandError(f"Failed to copy file to machine {host}")
        self.copies.append((host, local_path, remote_path))

    async def address(self, host: str) -> str:
        if host in self.unresolvable:
            raise RemoteCommandError(f"Failed to get ip of machine {host}")
        return f"ip-{host}"


class FakeRpc:
    def __init__(self, address: str, registry: "FakeRpcRegistry"):
        self.address = address
        self.registry = registry

    def pub_key(self):
        self.registry.status_calls[self.address] += 1
        if self.address in self.registry.down:
            raise NodeRpcError(-1, "connection refused")
        if self.address in self.registry.keys:
            return self.registry.keys[self.address]
        host = self.address.split(":")[0][len("ip-"):]
        return validator_key(host)

    def dial_seeds(self, seeds):
        if self.address in self.registry.refuse_dial:
            raise NodeRpcError(-1, "dial refused")
        self.registry.dialed[self.address] = list(seeds)
        return {}


class FakeRpcRegistry:
    def __init__(self):
        self.keys: Dict[str, object] = {}
        self.down: Set[str] = set()
        self.refuse_dial: Set[str] = set()
        self.status_calls: Dict[str, int] = defaultdict(int)
        self.dialed: Dict[str, List[str]] = {}

    def __call__(self, address: str) -> FakeRpc:
        return FakeRpc(address, self)


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def rpc() -> FakeRpcRegistry:
    return FakeRpcRegistry()


@pytest.fixture
def fast_settings() -> DeployerSettings:
    return DeployerSettings(
        marker_poll=PollSettings(max_attempts=3, interval=0.0, backoff="linear"),
        status_poll=PollSettings(max_attempts=3, interval=0.0),
        install_grace=0.0,
        identity_interval=0.01,
        identity_deadline=0.2,
        host_deadline=5.0,
    )
