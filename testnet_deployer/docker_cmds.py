"""Command lines run on a host to manage one app's container stack.

Each app owns four containers: a shared ``_tmcommon`` volume container and
the ``_tmdata``, ``_tmapp`` and ``_tmnode`` service containers that mount it.
"""

import uuid
from typing import Dict, List

from .configs.settings import DeployerSettings

COMMON = "tmcommon"
DATA = "tmdata"
APP = "tmapp"
NODE = "tmnode"

NIL_APP = "nilapp"

# order matters: later replacements must not re-escape earlier backslashes
_BASH_ESCAPES = (
    ("\\", "\\\\"),
    ("$", "\\$"),
    ('"', '\\"'),
    ("'", "\\'"),
    ("!", "\\!"),
    ("#", "\\#"),
    ("%", "\\%"),
    ("\t", "\\t"),
    ("`", "\\`"),
)


def container_name(app: str, role: str) -> str:
    return f"{app}_{role}"


def escape_bash(value: str) -> str:
    for raw, escaped in _BASH_ESCAPES:
        value = value.replace(raw, escaped)
    return value


def temp_name() -> str:
    """Random scratch directory name in the remote user's home"""
    return "temp_" + uuid.uuid4().hex[:12]


def start_common(app: str, settings: DeployerSettings) -> str:
    return f"docker run --name {container_name(app, COMMON)} --entrypoint true {settings.image}"


def copy_into_common(app: str, src: str, dst: str) -> str:
    """Copy the contents of host directory ``src`` into ``dst`` of the shared container"""
    return f"docker cp {src}/. {container_name(app, COMMON)}:{dst}"


def chown(app: str, dst: str, settings: DeployerSettings) -> str:
    user = settings.container_user
    return (
        f"docker run --rm --volumes-from {container_name(app, COMMON)} -u root "
        f"{settings.image} chown -R {user}:{user} {dst}"
    )


def remove_path(path: str) -> str:
    return f"rm -rf {path}"


def start_data(app: str, settings: DeployerSettings) -> str:
    return (
        f"docker run -d --name {container_name(app, DATA)} --volumes-from {container_name(app, COMMON)} "
        f"{settings.image} {settings.data_root}/init.sh"
    )


def start_app(app: str, settings: DeployerSettings) -> str:
    return (
        f"docker run -d --name {container_name(app, APP)} --volumes-from {container_name(app, COMMON)} "
        f"{settings.image} {settings.app_root}/init.sh"
    )


def start_core(
    app: str,
    host: str,
    seeds: List[str],
    settings: DeployerSettings,
    publish_all: bool = False,
    no_app: bool = False,
) -> str:
    if publish_all:
        ports = "--publish-all"
    else:
        ports = f"-p {settings.p2p_port}:{settings.p2p_port} -p {settings.rpc_port}:{settings.rpc_port}"

    if no_app:
        link = ""
        proxy_app = NIL_APP
    else:
        link = f"--link {container_name(app, APP)} "
        proxy_app = f"tcp://{container_name(app, APP)}:{settings.app_port}"

    env = (
        f'-e TMNAME="{escape_bash(host)}" '
        f'-e TMSEEDS="{escape_bash(",".join(seeds))}" '
        f'-e TMROOT="{escape_bash(settings.core_root)}" '
        f'-e PROXYAPP="{escape_bash(proxy_app)}"'
    )
    return (
        f"docker run -d {ports} --name {container_name(app, NODE)} "
        f"--volumes-from {container_name(app, COMMON)} {link}{env} "
        f"{settings.image} {settings.core_root}/init.sh"
    )


def file_exists(container: str, path: str) -> str:
    return f"docker exec {container} ls {path}"


def show_validator(app: str) -> str:
    return f"docker exec {container_name(app, NODE)} tendermint show_validator --log_level=error"


def port_map(container: str) -> str:
    return f"docker port {container}"


def parse_port_map(output: str) -> Dict[str, str]:
    """
    Parse ``docker port`` output into container port -> host port.

    Lines look like ``46656/tcp -> 0.0.0.0:32769``; anything else is ignored.
    """
    ports: Dict[str, str] = {}
    for line in output.splitlines():
        if "->" not in line:
            continue
        left, right = line.split("->", 1)
        container_port = left.split("/")[0].strip()
        host_port = right.rsplit(":", 1)[-1].strip()
        if container_port and host_port:
            ports.setdefault(container_port, host_port)
    return ports


def start_container(name: str) -> str:
    return f"docker start {name}"


def stop_container(name: str) -> str:
    return f"docker stop {name}"


def remove_container(name: str) -> str:
    return f"docker rm -v {name}"
