"""Tunables for the deployer: image, ports, container paths, polling and timeouts.

Defaults can be overridden from a TOML file and from ``TESTNET_*``
environment variables, e.g. ``TESTNET_IDENTITY_DEADLINE=900``.
"""

import os
import tomllib
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel

ENV_PREFIX = "TESTNET_"


class PollSettings(BaseModel):
    max_attempts: int
    interval: float
    backoff: Literal["fixed", "linear"] = "fixed"


class DeployerSettings(BaseModel):
    image: str = "tendermint/tmbase"
    container_user: str = "tmuser"

    p2p_port: int = 46656
    rpc_port: int = 46657
    app_port: int = 46658

    data_root: str = "/data/tendermint/data"
    app_root: str = "/data/tendermint/app"
    core_root: str = "/data/tendermint/core"
    data_socket: str = "/data/tendermint/data/data.sock"

    # attempt i sleeps i * interval before checking for the data socket
    marker_poll: PollSettings = PollSettings(max_attempts=9, interval=1.0, backoff="linear")
    # status endpoint cross-check after identity discovery
    status_poll: PollSettings = PollSettings(max_attempts=5, interval=1.0)

    install_grace: float = 10.0
    identity_interval: float = 5.0
    # None waits for the core process forever
    identity_deadline: Optional[float] = 600.0
    host_deadline: Optional[float] = 1800.0

    rpc_timeout: float = 10.0

    ssh_connect_timeout: float = 30.0
    ssh_keepalive_interval: float = 30.0
    # per command, for both the ssh and docker-machine transports
    ssh_command_timeout: float = 300.0
    ssh_retry: int = 2

    @property
    def seed_port(self) -> int:
        return self.p2p_port


def _env_overrides(fields: Dict[str, Any]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for name in fields:
        value = os.getenv(ENV_PREFIX + name.upper())
        if value is None:
            continue
        if value.lower() in ("none", "null", ""):
            overrides[name] = None
        else:
            overrides[name] = value
    return overrides


def load_settings(path: Optional[str] = None) -> DeployerSettings:
    """Build settings from defaults, an optional TOML file, then the environment."""
    data: Dict[str, Any] = {}
    if path:
        with open(path, "rb") as f:
            data = tomllib.load(f)

    scalar_fields = {
        name for name, field in DeployerSettings.model_fields.items()
        if field.annotation is not PollSettings
    }
    data.update(_env_overrides(scalar_fields))
    return DeployerSettings(**data)
