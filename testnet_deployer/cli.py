"""
Command Line Interface for the Testnet Deployer

Provides commands for:
- init chain: Lay out a chain base directory
- start: Bring an app's node stack up on every machine
- restart / stop / rm: Manage an app's containers
- info ports: Print the published ports of an app's core container
- docker: Run a docker command on every machine
- create / provision / destroy: Manage docker-machine hosts
"""

import argparse
import asyncio
import os
import sys
import tomllib
from typing import List, Optional

from dotenv import load_dotenv
from loguru import logger
from pydantic import ValidationError

from .chain_init import init_chain
from .configs import ChainConfigStore, DeployerSettings, load_settings
from .errors import DeployerError
from .fleet import FleetReport, HostPipeline, HostSuccess, run_fleet
from .hosts import resolve
from .launch import launch_network
from .lifecycle import CommandSequence, PortsQuery, restart_commands, rm_commands, stop_commands
from .machines import DockerPassthrough, MachineAction
from .pipeline import StartOptions
from .remote import DockerMachineGateway, RemoteGateway, SshGateway
from .utils.logger import configure_logger

DEFAULT_MACHINES = "mach[1-4]"
TRANSPORTS = ("docker-machine", "ssh")


def get_gateway(args, settings: DeployerSettings) -> RemoteGateway:
    """Build the transport selected on the command line"""
    if args.transport == "ssh":
        try:
            return SshGateway.from_file(
                args.hosts_file,
                connect_timeout=settings.ssh_connect_timeout,
                keepalive_interval=settings.ssh_keepalive_interval,
                command_timeout=settings.ssh_command_timeout,
                retry=settings.ssh_retry,
            )
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise DeployerError(f"Cannot load host inventory {args.hosts_file}: {e}") from e
    return DockerMachineGateway(timeout=settings.ssh_command_timeout)


def run_on_machines(
    hosts: List[str], pipeline: HostPipeline, strict: bool, what: str, deadline: Optional[float] = None
) -> int:
    report: FleetReport = asyncio.run(run_fleet(hosts, pipeline, deadline=deadline))
    return summarize(report, strict, what)


def summarize(report: FleetReport, strict: bool, what: str) -> int:
    failures = report.failures
    if failures:
        logger.warning(f"{what}: {len(failures)} of {len(report.hosts)} machines failed")
        for failure in failures:
            logger.warning(f"  - {failure.host}: {failure.error}")
        return 1 if strict else 0
    logger.success(f"{what}: all {len(report.hosts)} machines succeeded")
    return 0


# === Init Command ===

def init_chain_command(args):
    """init chain handler"""
    try:
        hosts = resolve(args.machines)
        init_chain(args.base, hosts, validator_set_dir=args.validator_set, app_script=args.app)
        return 0
    except DeployerError as e:
        logger.error(f"Chain init failed: {e}")
        return 1


# === Start Command ===

def start_command(args):
    """start handler"""
    try:
        hosts = resolve(args.machines)
        seed_hosts = resolve(args.seed_machines) if args.seed_machines else None
        gateway = get_gateway(args, args.settings_obj)
        options = StartOptions(
            app=args.app,
            base_dir=args.base,
            publish_all=args.publish_all,
            no_app=args.no_app,
        )
        result = asyncio.run(
            launch_network(
                gateway,
                hosts,
                options,
                ChainConfigStore(args.base),
                settings=args.settings_obj,
                seed_hosts=seed_hosts,
            )
        )
    except DeployerError as e:
        logger.error(f"Start failed: {e}")
        return 1

    for host, accepted in result.dialed.items():
        if not accepted:
            logger.warning(f"{host} did not accept the seed list")
    code = summarize(result.report, args.strict, f"Start {args.app}")
    if not result.report.failures:
        logger.success(f"Done launching network for {args.app}")
    return code


# === Lifecycle Commands ===

def restart_command(args):
    return _lifecycle(args, restart_commands(args.app, no_app=args.no_app), f"Restart {args.app}")


def stop_command(args):
    return _lifecycle(args, stop_commands(args.app, no_app=args.no_app), f"Stop {args.app}")


def rm_command(args):
    return _lifecycle(args, rm_commands(args.app, force=args.force, no_app=args.no_app), f"Remove {args.app}")


def _lifecycle(args, commands: List[str], what: str) -> int:
    try:
        hosts = resolve(args.machines)
        gateway = get_gateway(args, args.settings_obj)
    except DeployerError as e:
        logger.error(f"{what} failed: {e}")
        return 1
    return run_on_machines(
        hosts, CommandSequence(gateway, commands), args.strict, what, deadline=args.settings_obj.host_deadline
    )


def ports_command(args):
    """info ports handler"""
    try:
        hosts = resolve(args.machines)
        gateway = get_gateway(args, args.settings_obj)
    except DeployerError as e:
        logger.error(f"Port lookup failed: {e}")
        return 1

    report = asyncio.run(run_fleet(hosts, PortsQuery(gateway, args.app), deadline=args.settings_obj.host_deadline))
    for host in hosts:
        outcome = report.results[host]
        if isinstance(outcome, HostSuccess):
            mapping = ", ".join(f"{c} -> {h}" for c, h in sorted(outcome.value.items())) or "(none)"
            logger.info(f"Machine {host}: {mapping}")
    return summarize(report, args.strict, f"Ports of {args.app}")


# === Machine Commands ===

def docker_command(args):
    """docker handler"""
    if not args.docker_args:
        logger.error("docker requires a command to run")
        return 1
    try:
        hosts = resolve(args.machines)
        gateway = get_gateway(args, args.settings_obj)
    except DeployerError as e:
        logger.error(f"docker failed: {e}")
        return 1
    return run_on_machines(
        hosts, DockerPassthrough(gateway, args.docker_args), args.strict, "docker", deadline=args.settings_obj.host_deadline
    )


def machine_command(args):
    """create / provision / destroy handler"""
    if args.transport != "docker-machine":
        logger.error(f"{args.action} needs the docker-machine transport")
        return 1
    try:
        hosts = resolve(args.machines)
    except DeployerError as e:
        logger.error(f"{args.action} failed: {e}")
        return 1
    deadline = args.settings_obj.host_deadline
    action = MachineAction(DockerMachineGateway(timeout=deadline), args.action, getattr(args, "machine_args", []))
    return run_on_machines(hosts, action, args.strict, args.action.capitalize(), deadline=deadline)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="testnet-deployer",
        description="Multi-host test network deployment tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Lay out a chain directory for four machines
  testnet-deployer -m "mach[1-4]" init chain ./mychain

  # Start the app and link nodes through random ports
  testnet-deployer -m "mach[1-4]" start myapp ./mychain -P

  # Tear it down
  testnet-deployer -m "mach[1-4]" rm myapp --force
        """
    )

    # Global arguments
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("-m", "--machines", default=DEFAULT_MACHINES, help="Machine range expression, e.g. 'mach[1-4];seed'")
    parser.add_argument(
        "--transport",
        choices=TRANSPORTS,
        default=os.getenv("TESTNET_TRANSPORT", "docker-machine"),
        help="How machines are reached",
    )
    parser.add_argument("--hosts-file", default=os.getenv("TESTNET_HOSTS_FILE", "hosts.json"), help="Host inventory for the ssh transport")
    parser.add_argument("--settings", default=os.getenv("TESTNET_SETTINGS"), help="TOML settings file")
    parser.add_argument("--log-file", help="Also write debug logs to this file")

    fanout = argparse.ArgumentParser(add_help=False)
    fanout.add_argument("--strict", action="store_true", help="Exit non-zero if any machine fails")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Init command
    init_parser = subparsers.add_parser("init", help="Initialize node configuration directories")
    init_sub = init_parser.add_subparsers(dest="init_command", required=True)
    chain_parser = init_sub.add_parser("chain", help="Initialize a new blockchain")
    chain_parser.add_argument("base", help="Chain base directory")
    chain_parser.add_argument("--validator-set", help="Path to the validator set for the new chain")
    chain_parser.add_argument("--app", help="Script to use as the app service's init.sh")
    chain_parser.set_defaults(func=init_chain_command)

    # Start command
    start_parser = subparsers.add_parser("start", parents=[fanout], help="Start blockchain application")
    start_parser.add_argument("app", help="App name")
    start_parser.add_argument("base", help="Chain base directory")
    start_parser.add_argument("--seed-machines", default="", help="Machine range expression for seeds, defaults to --machines")
    start_parser.add_argument("-P", "--publish-all", action="store_true", help="Publish all exposed ports to random ports")
    start_parser.add_argument("--no-app", action="store_true", help="Run the core against an in-process null app")
    start_parser.set_defaults(func=start_command)

    # Restart / Stop / Rm commands
    for name, func, help_text in (
        ("restart", restart_command, "Restart blockchain application"),
        ("stop", stop_command, "Stop blockchain application"),
        ("rm", rm_command, "Remove blockchain application"),
    ):
        sub = subparsers.add_parser(name, parents=[fanout], help=help_text)
        sub.add_argument("app", help="App name")
        sub.add_argument("--no-app", action="store_true", help="The app was started without app containers")
        if name == "rm":
            sub.add_argument("--force", action="store_true", help="Force stop app if already running")
        sub.set_defaults(func=func)

    # Info command
    info_parser = subparsers.add_parser("info", help="Information about running containers")
    info_sub = info_parser.add_subparsers(dest="info_command", required=True)
    ports_parser = info_sub.add_parser("ports", parents=[fanout], help="Print container port mapping")
    ports_parser.add_argument("app", help="App name")
    ports_parser.set_defaults(func=ports_command)

    # Docker command
    docker_parser = subparsers.add_parser("docker", parents=[fanout], help="Execute a docker command on all machines")
    docker_parser.add_argument("docker_args", nargs=argparse.REMAINDER, help="Arguments passed to docker")
    docker_parser.set_defaults(func=docker_command)

    # Machine commands
    for action, help_text in (
        ("create", "Create machines. Use -- to pass args through to docker-machine"),
        ("provision", "Re-provision machines. Use -- to pass args through to docker-machine"),
    ):
        sub = subparsers.add_parser(action, parents=[fanout], help=help_text)
        sub.add_argument("machine_args", nargs=argparse.REMAINDER, help="Arguments passed to docker-machine")
        sub.set_defaults(func=machine_command, action=action)
    destroy_parser = subparsers.add_parser("destroy", parents=[fanout], help="Destroy machines")
    destroy_parser.set_defaults(func=machine_command, action="destroy")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point"""
    load_dotenv()
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logger(args.verbose, args.log_file)

    try:
        args.settings_obj = load_settings(args.settings)
    except (OSError, tomllib.TOMLDecodeError, ValidationError) as e:
        logger.error(f"Invalid settings: {e}")
        return 1

    if getattr(args, "machine_args", None) and args.machine_args[0] == "--":
        args.machine_args = args.machine_args[1:]
    if getattr(args, "docker_args", None) and args.docker_args[0] == "--":
        args.docker_args = args.docker_args[1:]
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
