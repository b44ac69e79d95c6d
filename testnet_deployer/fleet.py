"""
Fleet Coordinator

Runs one pipeline per host concurrently and collects exactly one outcome
per host. A host's failure never cancels or blocks its siblings.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Union

from loguru import logger

from .configs.types import ProvisionedNode
from .errors import DuplicateHostError, ProvisionTimeout, StageError

HostPipeline = Callable[[str, int], Awaitable[Any]]


@dataclass(frozen=True)
class HostSuccess:
    host: str
    ordinal: int
    value: Any


@dataclass(frozen=True)
class HostFailure:
    host: str
    ordinal: int
    error: BaseException
    stage: Optional[str] = None


HostOutcome = Union[HostSuccess, HostFailure]


@dataclass
class FleetReport:
    """Outcomes of one fan-out, keyed by host"""
    hosts: List[str]
    results: Dict[str, HostOutcome] = field(default_factory=dict)
    completion_order: List[str] = field(default_factory=list)

    @property
    def successes(self) -> List[HostSuccess]:
        """Successful outcomes in completion order"""
        return [r for r in (self.results[h] for h in self.completion_order) if isinstance(r, HostSuccess)]

    @property
    def failures(self) -> List[HostFailure]:
        return [r for r in (self.results[h] for h in self.completion_order) if isinstance(r, HostFailure)]

    @property
    def ok(self) -> bool:
        return not self.failures

    def seeds(self) -> List[str]:
        """p2p addresses of successful hosts, in the order they finished"""
        return [
            s.value.endpoint.p2p_addr for s in self.successes
            if isinstance(s.value, ProvisionedNode)
        ]


async def run_fleet(
    hosts: Sequence[str],
    pipeline: HostPipeline,
    *,
    deadline: Optional[float] = None,
) -> FleetReport:
    """
    Run ``pipeline(host, ordinal)`` for every host and wait for all of them.

    Args:
        hosts: Hosts in submission order; ordinal is the position in this list
        pipeline: Async callable producing the host's success value
        deadline: Optional per-host limit in seconds

    Returns:
        FleetReport with one entry per submitted host
    """
    seen = set()
    for host in hosts:
        if host in seen:
            raise DuplicateHostError(host)
        seen.add(host)

    report = FleetReport(hosts=list(hosts))
    if not hosts:
        return report

    sink: "asyncio.Queue[HostOutcome]" = asyncio.Queue()

    async def run_host(host: str, ordinal: int) -> None:
        try:
            async with asyncio.timeout(deadline):
                value = await pipeline(host, ordinal)
        except StageError as e:
            outcome: HostOutcome = HostFailure(host, ordinal, e, e.stage)
        except TimeoutError as e:
            timeout = ProvisionTimeout(f"{host} did not finish within {deadline}s")
            timeout.__cause__ = e
            outcome = HostFailure(host, ordinal, timeout)
        except Exception as e:
            outcome = HostFailure(host, ordinal, e)
        else:
            outcome = HostSuccess(host, ordinal, value)
        await sink.put(outcome)

    tasks = [asyncio.create_task(run_host(host, i)) for i, host in enumerate(hosts)]
    try:
        while len(report.results) < len(report.hosts):
            outcome = await sink.get()
            if outcome.host in report.results:
                raise RuntimeError(f"Second outcome for host {outcome.host}")
            report.results[outcome.host] = outcome
            report.completion_order.append(outcome.host)
            if isinstance(outcome, HostFailure):
                if isinstance(outcome.error, StageError):
                    logger.warning(str(outcome.error))
                else:
                    logger.warning(f"[{outcome.host}]: {outcome.error}")
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    logger.info(f"{len(report.successes)} of {len(hosts)} hosts succeeded")
    return report
