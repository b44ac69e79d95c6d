"""Bounded readiness polling for remote resources.

Every attempt runs sequentially for its own host; sleeping only suspends
the host's task.
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional

from loguru import logger

from .configs.settings import PollSettings
from .errors import PollTimeout
from .remote.base import CommandResult


def attempt_delay(policy: PollSettings, attempt: int) -> float:
    """Delay before the 1-based ``attempt`` under ``policy``."""
    if policy.backoff == "linear":
        return attempt * policy.interval
    return policy.interval


async def poll_until_ready(
    check: Callable[[], Awaitable[bool]],
    policy: PollSettings,
) -> bool:
    """
    Run ``check`` until it returns True or attempts run out.

    The delay is taken before each attempt. An exception raised by
    ``check`` counts as not ready.

    Returns:
        True on the first successful check, False when exhausted
    """
    for attempt in range(1, policy.max_attempts + 1):
        await asyncio.sleep(attempt_delay(policy, attempt))
        try:
            if await check():
                return True
        except Exception as e:
            logger.debug(f"Readiness check attempt {attempt}/{policy.max_attempts} raised: {e}")
    return False


async def poll_for_output(
    fetch: Callable[[], Awaitable[CommandResult]],
    *,
    interval: float,
    deadline: Optional[float],
    on_wait: Optional[Callable[[CommandResult, float], None]] = None,
) -> str:
    """
    Retry ``fetch`` until it succeeds with non-empty output.

    A failed command or empty output means "not ready yet". ``on_wait`` is
    called with the last result and the elapsed seconds on every miss.

    Args:
        fetch: Runs the remote command
        interval: Seconds between attempts
        deadline: Seconds before giving up, None to wait forever

    Returns:
        The stripped command output

    Raises:
        PollTimeout: If ``deadline`` passes first
    """
    started = time.monotonic()
    while True:
        result = await fetch()
        output = result.stdout.strip()
        if result.success and output:
            return output

        elapsed = time.monotonic() - started
        if deadline is not None and elapsed + interval > deadline:
            raise PollTimeout(
                f"no output from {result.host} after {elapsed:.0f}s "
                f"(last rc={result.return_code}, stderr={result.stderr.strip()!r})"
            )
        if on_wait is not None:
            on_wait(result, elapsed)
        await asyncio.sleep(interval)
