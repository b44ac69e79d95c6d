import asyncio

import pytest

from conftest import FakeGateway, failed
from testnet_deployer.errors import RemoteCommandError
from testnet_deployer.fleet import HostFailure, HostSuccess, run_fleet
from testnet_deployer.lifecycle import CommandSequence, PortsQuery, restart_commands, rm_commands, stop_commands


def test_restart_and_stop_commands():
    assert restart_commands("app") == ["docker start app_tmapp", "docker start app_tmnode"]
    assert stop_commands("app") == ["docker stop app_tmnode", "docker stop app_tmapp"]
    assert restart_commands("app", no_app=True) == ["docker start app_tmnode"]
    assert stop_commands("app", no_app=True) == ["docker stop app_tmnode"]


def test_rm_commands():
    assert rm_commands("app") == [
        "docker rm -v app_tmcommon",
        "docker rm -v app_tmdata",
        "docker rm -v app_tmapp",
        "docker rm -v app_tmnode",
    ]
    assert rm_commands("app", force=True)[:3] == [
        "docker stop app_tmdata",
        "docker stop app_tmnode",
        "docker stop app_tmapp",
    ]
    assert rm_commands("app", force=True, no_app=True) == [
        "docker stop app_tmnode",
        "docker rm -v app_tmcommon",
        "docker rm -v app_tmnode",
    ]


def test_command_sequence_attempts_every_command():
    gateway = FakeGateway([lambda host, cmd: failed(host) if host == "m2" and "tmapp" in cmd else None])
    seq = CommandSequence(gateway, stop_commands("app"))

    report = asyncio.run(run_fleet(["m1", "m2"], seq))

    assert isinstance(report.results["m1"], HostSuccess)
    m2 = report.results["m2"]
    assert isinstance(m2, HostFailure)
    assert isinstance(m2.error, RemoteCommandError)
    assert "docker stop app_tmapp" in str(m2.error)
    assert gateway.ran["m2"] == ["docker stop app_tmnode", "docker stop app_tmapp"]


def test_ports_query():
    gateway = FakeGateway()
    mapping = asyncio.run(PortsQuery(gateway, "app")("m1", 0))
    assert mapping == {"46656": "32769", "46657": "32770"}
    assert gateway.ran["m1"] == ["docker port app_tmnode"]


def test_ports_query_failure():
    gateway = FakeGateway([lambda host, cmd: failed(host, "No such container")])
    with pytest.raises(RemoteCommandError):
        asyncio.run(PortsQuery(gateway, "app")("m1", 0))
