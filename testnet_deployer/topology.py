"""
Topology Assembler

Merges a fleet run into the chain's validator slots and links the
started nodes into a seed mesh.
"""

import asyncio
from typing import Callable, Dict, List, Sequence

from loguru import logger

from .configs.types import NetworkConfiguration, ProvisionedNode, Validator, ValidatorSlot
from .errors import ChainConfigError
from .fleet import FleetReport, HostSuccess
from .rpc import NodeRpcClient


def check_slot_capacity(config: NetworkConfiguration, hosts: Sequence[str]) -> None:
    """Fail before any host is touched when there are more hosts than slots"""
    if len(hosts) > len(config.validators):
        raise ChainConfigError(
            f"{len(hosts)} machines but the chain config only declares {len(config.validators)} validators"
        )


def assemble(config: NetworkConfiguration, hosts: Sequence[str], report: FleetReport) -> NetworkConfiguration:
    """
    Fill slot ``i`` from the outcome of ``hosts[i]``.

    Successful hosts overwrite the slot's validator and endpoint. Failed
    hosts keep the slot's existing validator id and key, with no endpoint.
    The slot count and every slot index are left unchanged.
    """
    check_slot_capacity(config, hosts)

    slots: List[ValidatorSlot] = []
    for i, slot in enumerate(config.validators):
        outcome = report.results.get(hosts[i]) if i < len(hosts) else None
        if outcome is None:
            slots.append(slot)
        elif isinstance(outcome, HostSuccess) and isinstance(outcome.value, ProvisionedNode):
            node = outcome.value
            slots.append(ValidatorSlot(index=slot.index, validator=node.validator, endpoint=node.endpoint))
        else:
            placeholder = Validator(id=slot.validator.id, pub_key=slot.validator.pub_key)
            slots.append(ValidatorSlot(index=slot.index, validator=placeholder, endpoint=None))

    return NetworkConfiguration(id=config.id, val_set_id=config.val_set_id, validators=slots)


async def dial_seeds_all(
    report: FleetReport,
    seeds: List[str],
    rpc_factory: Callable[[str], NodeRpcClient],
) -> Dict[str, bool]:
    """
    Tell every successful host to dial ``seeds``, concurrently.

    Failures are logged per host and never raised.

    Returns:
        Dict mapping host to whether its node accepted the call
    """
    targets = [s for s in report.successes if isinstance(s.value, ProvisionedNode)]

    async def dial(success: HostSuccess) -> bool:
        rpc_addr = success.value.endpoint.rpc_addr
        client = rpc_factory(rpc_addr)
        try:
            await asyncio.to_thread(client.dial_seeds, seeds)
        except Exception as e:
            logger.warning(f"[{success.host}] Error dialing seeds at rpc address {rpc_addr}: {e}")
            return False
        logger.debug(f"[{success.host}] dialing {len(seeds)} seeds")
        return True

    results = await asyncio.gather(*(dial(s) for s in targets))
    return {s.host: ok for s, ok in zip(targets, results)}
