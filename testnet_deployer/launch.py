"""
Network Launch

Start-to-finish bring-up of one app across a set of hosts: read the chain
config, start every host, persist the merged topology, then link the mesh.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from loguru import logger

from .configs.loader import ChainConfigStore
from .configs.settings import DeployerSettings
from .configs.types import NetworkConfiguration
from .fleet import FleetReport, run_fleet
from .pipeline import RpcFactory, StartOptions, StartPipeline
from .remote.base import RemoteGateway
from .topology import assemble, check_slot_capacity, dial_seeds_all


@dataclass
class LaunchResult:
    config: NetworkConfiguration
    report: FleetReport
    dialed: Dict[str, bool] = field(default_factory=dict)


async def resolve_seed_addresses(gateway: RemoteGateway, seed_hosts: Sequence[str], port: int) -> List[str]:
    """``address:port`` for every seed host; any unresolvable host is fatal"""
    addresses = await asyncio.gather(*(gateway.address(h) for h in seed_hosts))
    return [f"{address}:{port}" for address in addresses]


async def launch_network(
    gateway: RemoteGateway,
    hosts: Sequence[str],
    options: StartOptions,
    store: ChainConfigStore,
    settings: Optional[DeployerSettings] = None,
    seed_hosts: Optional[Sequence[str]] = None,
    rpc_factory: Optional[RpcFactory] = None,
) -> LaunchResult:
    """
    Bring up ``options.app`` on every host and record the result.

    The chain config is written even when some hosts fail; only failures
    to read or write it are raised.

    Args:
        gateway: Transport to the hosts
        hosts: Hosts in validator slot order
        options: App, chain base dir and run flags; ``seeds`` is filled in here
        store: Chain config location
        settings: Deployer settings
        seed_hosts: Explicit seed machines, defaults to ``hosts``

    Returns:
        LaunchResult with the persisted config and the per-host report
    """
    settings = settings or DeployerSettings()

    config = store.load()
    config.id = options.app
    check_slot_capacity(config, hosts)

    explicit_seeds = bool(seed_hosts)
    options.seeds = await resolve_seed_addresses(gateway, seed_hosts or hosts, settings.seed_port)

    pipeline = StartPipeline(gateway, options, settings, rpc_factory)
    logger.info(f"Starting {options.app} on {len(hosts)} machines")
    report = await run_fleet(hosts, pipeline)

    assembled = assemble(config, hosts, report)
    store.save(assembled)
    logger.info(f"Chain config written to {store.path}")

    result = LaunchResult(config=assembled, report=report)
    if options.publish_all and report.successes:
        seeds = options.seeds if explicit_seeds else report.seeds()
        logger.info("Instruct nodes to dial each other")
        result.dialed = await dial_seeds_all(report, seeds, pipeline.rpc_factory)
    return result
