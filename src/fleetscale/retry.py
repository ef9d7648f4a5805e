# SPDX-FileCopyrightText: Copyright (c) 2026 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

"""
Bounded retry with a declarative backoff schedule.

A single check of eventually-consistent remote state (a VM answering ssh, a
replica change reaching the nodes) is unreliable, so checks are re-run with
a backoff schedule until they succeed or the budget is spent. The node
readiness poller uses the same loop with a fixed interval and a deadline.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Sequence, Tuple

from fleetscale.defaults import RetryDefaults
from fleetscale.errors import FleetScaleError, RetryExhaustedError

logger = logging.getLogger(__name__)

Check = Callable[[], Awaitable[bool]]


@dataclass(frozen=True)
class RetryPolicy:
    """
    Attributes:
        backoff: Sleep durations between attempts; the last one is reused
            once the sequence is exhausted
        max_attempts: Maximum number of check calls (None for no limit)
        timeout: Overall budget in seconds, measured from the first call
            (None for no limit)
    """

    backoff: Tuple[float, ...] = tuple(RetryDefaults.backoff)
    max_attempts: Optional[int] = RetryDefaults.max_attempts
    timeout: Optional[float] = None

    def __post_init__(self):
        if not self.backoff:
            raise ValueError("backoff must contain at least one duration")
        if any(d < 0 for d in self.backoff):
            raise ValueError(f"backoff durations must be >= 0, got {self.backoff}")
        if self.max_attempts is None and self.timeout is None:
            raise ValueError("either max_attempts or timeout must bound the retry")
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.timeout is not None and self.timeout < 0:
            raise ValueError(f"timeout must be >= 0, got {self.timeout}")

    @classmethod
    def fixed(
        cls,
        interval: float,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
    ) -> "RetryPolicy":
        return cls(backoff=(interval,), max_attempts=max_attempts, timeout=timeout)

    def delay_for(self, attempt_index: int) -> float:
        """Sleep after the failed attempt at ``attempt_index`` (0-based)."""
        return self.backoff[min(attempt_index, len(self.backoff) - 1)]


@dataclass(frozen=True)
class RetryResult:
    ok: bool
    attempts: int
    elapsed: float


async def run_with_retry(
    check: Check,
    policy: RetryPolicy,
    what: str = "check",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> RetryResult:
    """
    Call ``check`` until it returns True or the policy budget is spent.

    The first call is immediate. Exceptions raised by the check are not
    retried and propagate to the caller.
    """
    start = clock()
    attempt = 0

    while True:
        attempt += 1
        if await check():
            elapsed = clock() - start
            logger.debug(f"{what} succeeded on attempt {attempt} ({elapsed:.1f}s)")
            return RetryResult(ok=True, attempts=attempt, elapsed=elapsed)

        if policy.max_attempts is not None and attempt >= policy.max_attempts:
            break

        delay = policy.delay_for(attempt - 1)
        if policy.timeout is not None:
            remaining = policy.timeout - (clock() - start)
            if remaining <= 0:
                break
            delay = min(delay, remaining)

        logger.debug(f"{what} attempt {attempt} failed, retrying in {delay:g}s")
        await sleep(delay)

    elapsed = clock() - start
    logger.debug(f"{what} gave up after {attempt} attempt(s) ({elapsed:.1f}s)")
    return RetryResult(ok=False, attempts=attempt, elapsed=elapsed)


async def retry_or_raise(
    check: Check,
    policy: RetryPolicy,
    what: str = "check",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> RetryResult:
    result = await run_with_retry(check, policy, what=what, sleep=sleep, clock=clock)
    if not result.ok:
        raise RetryExhaustedError(what, result.attempts)
    return result


def command_check(
    argv: Sequence[str], timeout: float = RetryDefaults.command_timeout
) -> Check:
    """
    Build a check that runs ``argv`` and succeeds when it exits with status 0.

    A command that hangs past ``timeout`` is killed and counts as a failed
    attempt. A command that cannot be started at all raises FleetScaleError.
    """
    if not argv:
        raise ValueError("command_check needs a command to run")
    argv = list(argv)

    async def check() -> bool:
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise FleetScaleError(f"could not run {argv[0]}: {e}") from e

        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            logger.debug(f"{argv[0]} timed out after {timeout:g}s")
            return False

        if proc.returncode != 0:
            tail = stderr.decode(errors="replace").strip()[-200:] if stderr else ""
            logger.debug(f"{argv[0]} exited with {proc.returncode}: {tail}")
        return proc.returncode == 0

    return check
