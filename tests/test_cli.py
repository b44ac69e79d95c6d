import asyncio
import json
import time

import pytest

from conftest import FakeGateway, failed
from testnet_deployer import cli
from testnet_deployer.configs.loader import ChainConfigStore


@pytest.fixture(autouse=True)
def quiet_env(monkeypatch):
    monkeypatch.setattr(cli, "load_dotenv", lambda: None)
    monkeypatch.setattr(cli, "configure_logger", lambda verbose=False, log_file=None: None)


def test_parser_defaults():
    args = cli.build_parser().parse_args(["start", "myapp", "./chain"])
    assert args.machines == "mach[1-4]"
    assert args.seed_machines == ""
    assert args.publish_all is False and args.no_app is False and args.strict is False


def test_parser_subcommands():
    parser = cli.build_parser()
    args = parser.parse_args(["-m", "a[1-2]", "rm", "myapp", "--force", "--no-app"])
    assert args.func is cli.rm_command and args.force and args.no_app
    args = parser.parse_args(["info", "ports", "myapp"])
    assert args.func is cli.ports_command
    args = parser.parse_args(["docker", "ps", "-a"])
    assert args.docker_args == ["ps", "-a"]
    args = parser.parse_args(["start", "-P", "app", "base"])
    assert args.publish_all


def test_init_chain_command(tmp_path):
    base = tmp_path / "chain"
    assert cli.main(["-m", "n[1-3]", "init", "chain", str(base)]) == 0
    config = ChainConfigStore(str(base)).load()
    assert [s.validator.id for s in config.validators] == ["n1", "n2", "n3"]


def test_bad_machine_expression_exits_one(tmp_path):
    assert cli.main(["-m", "foo[5-2]", "init", "chain", str(tmp_path / "c")]) == 1
    assert cli.main(["-m", "foo[1];foo[1]", "stop", "myapp"]) == 1


def test_start_missing_chain_config_exits_one(tmp_path, monkeypatch):
    monkeypatch.setattr(cli, "get_gateway", lambda args, settings: FakeGateway())
    assert cli.main(["start", "myapp", str(tmp_path)]) == 1


def test_start_partial_failure_policy(tmp_path, monkeypatch, rpc):
    base = tmp_path / "chain"
    assert cli.main(["-m", "m[1-2]", "init", "chain", str(base)]) == 0
    (tmp_path / "fast.toml").write_text(
        "install_grace = 0\nidentity_interval = 0.01\nidentity_deadline = 1\n"
        "[status_poll]\nmax_attempts = 2\ninterval = 0\n"
        "[marker_poll]\nmax_attempts = 2\ninterval = 0\n"
    )
    monkeypatch.setattr(
        cli,
        "get_gateway",
        lambda args, settings: FakeGateway([lambda h, c: failed(h) if h == "m2" and "tmcommon --entrypoint" in c else None]),
    )
    monkeypatch.setattr("testnet_deployer.pipeline.NodeRpcClient", lambda address, timeout=None: rpc(address))

    argv = ["-m", "m[1-2]", "--settings", str(tmp_path / "fast.toml"), "start", "myapp", str(base)]
    assert cli.main(argv) == 0
    assert cli.main(argv + ["--strict"]) == 1

    data = json.loads((base / "chain_config.json").read_text())
    assert data["id"] == "myapp"
    assert data["validators"][0]["p2p_address"] == "ip-m1:46656"
    assert data["validators"][1]["p2p_address"] == ""


def test_lifecycle_strict(monkeypatch):
    gateway = FakeGateway([lambda h, c: failed(h) if h == "mach2" else None])
    monkeypatch.setattr(cli, "get_gateway", lambda args, settings: gateway)
    assert cli.main(["restart", "myapp"]) == 0
    assert cli.main(["restart", "myapp", "--strict"]) == 1
    assert gateway.ran["mach1"][:2] == ["docker start myapp_tmapp", "docker start myapp_tmnode"]


def test_machine_commands_need_docker_machine():
    assert cli.main(["--transport", "ssh", "destroy"]) == 1


def test_docker_requires_arguments():
    assert cli.main(["docker"]) == 1


def test_invalid_settings_file(tmp_path):
    bad = tmp_path / "bad.toml"
    bad.write_text("this is = = not toml")
    assert cli.main(["--settings", str(bad), "stop", "myapp"]) == 1


def test_lifecycle_fanout_is_bounded_by_host_deadline(tmp_path, monkeypatch):
    class HangingGateway(FakeGateway):
        async def run(self, host, command):
            if host == "mach2":
                await asyncio.sleep(10)
            return await super().run(host, command)

    gateway = HangingGateway()
    monkeypatch.setattr(cli, "get_gateway", lambda args, settings: gateway)
    (tmp_path / "short.toml").write_text("host_deadline = 0.1\n")

    started = time.monotonic()
    code = cli.main(["-m", "mach[1-2]", "--settings", str(tmp_path / "short.toml"), "stop", "myapp", "--strict"])
    assert time.monotonic() - started < 2
    assert code == 1
    assert gateway.ran["mach1"] == ["docker stop myapp_tmnode", "docker stop myapp_tmapp"]
