# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
"""
Retry and polling utilities with exponential backoff.

retry_operation() re-runs an idempotent call that failed with a transient
error. poll_until() waits for a remote state change (disk archiving, Nutanix
task, ...) with a growing interval and an overall deadline.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple, Type, TypeVar, Union

from .exceptions import PollTimeout

T = TypeVar("T")

Sleeper = Callable[[float], None]
Clock = Callable[[], float]


def backoff_delay(attempt: int, base_s: float, max_s: float, factor: float = 2.0) -> float:
    """Delay before retry/poll number `attempt` (1-based): base * factor**(attempt-1), capped."""
    return min(base_s * (factor ** max(0, attempt - 1)), max_s)


def retry_operation(
    operation: Callable[[], T],
    *,
    max_attempts: int = 3,
    base_backoff_s: float = 2.0,
    max_backoff_s: float = 60.0,
    jitter_s: float = 1.0,
    exceptions: Union[Type[BaseException], Tuple[Type[BaseException], ...]] = Exception,
    operation_name: str = "operation",
    logger: Optional[Any] = None,
    log_level: int = logging.WARNING,
    sleep: Sleeper = time.sleep,
) -> T:
    """
    Retry an operation (function call) with exponential backoff.

    Only exceptions matching `exceptions` are retried; anything else
    propagates on the first attempt. The last exception is re-raised once
    attempts are exhausted.

    Example:
        pools = retry_operation(
            lambda: session.get(url),
            exceptions=(requests.ConnectionError, requests.Timeout),
            operation_name="GET desktop-pools",
            logger=logger,
        )
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    for attempt in range(1, max_attempts + 1):
        try:
            return operation()
        except exceptions as e:
            if attempt >= max_attempts:
                if logger:
                    logger.log(logging.ERROR, "%s failed after %d attempts: %s", operation_name, max_attempts, e)
                raise

            sleep_time = backoff_delay(attempt, base_backoff_s, max_backoff_s)
            if jitter_s > 0:
                sleep_time += random.uniform(0, jitter_s)

            if logger:
                logger.log(
                    log_level,
                    "%s failed (attempt %d/%d): %s. Retrying in %.2fs...",
                    operation_name,
                    attempt,
                    max_attempts,
                    e,
                    sleep_time,
                )
            sleep(sleep_time)

    raise RuntimeError(f"{operation_name} failed with no exception recorded")


@dataclass(frozen=True)
class PollPolicy:
    """
    Bounded polling schedule.

    interval_s:      first wait between two probes
    max_interval_s:  cap for the growing interval
    factor:          growth factor applied after every probe (1.0 = fixed interval)
    timeout_s:       overall deadline; None waits forever
    """
    interval_s: float = 15.0
    max_interval_s: float = 120.0
    factor: float = 2.0
    timeout_s: Optional[float] = 3600.0

    def __post_init__(self) -> None:
        if self.interval_s <= 0:
            raise ValueError(f"interval_s must be > 0, got {self.interval_s}")
        if self.max_interval_s < self.interval_s:
            raise ValueError("max_interval_s must be >= interval_s")
        if self.factor < 1.0:
            raise ValueError(f"factor must be >= 1.0, got {self.factor}")
        if self.timeout_s is not None and self.timeout_s <= 0:
            raise ValueError(f"timeout_s must be > 0, got {self.timeout_s}")


def poll_until(
    probe: Callable[[], T],
    done: Callable[[T], bool],
    *,
    policy: PollPolicy = PollPolicy(),
    what: str = "condition",
    describe: Callable[[Any], str] = str,
    logger: Optional[Any] = None,
    sleep: Sleeper = time.sleep,
    clock: Clock = time.monotonic,
) -> T:
    """
    Call probe() until done(result) is true and return that result.

    Raises PollTimeout when the next wait would cross policy.timeout_s.
    Exceptions raised by probe() propagate unchanged.
    """
    start = clock()
    attempt = 0
    while True:
        attempt += 1
        value = probe()
        if done(value):
            if logger:
                logger.debug("%s reached after %d probe(s) (%.1fs)", what, attempt, clock() - start)
            return value

        delay = backoff_delay(attempt, policy.interval_s, policy.max_interval_s, policy.factor)
        elapsed = clock() - start
        if policy.timeout_s is not None and elapsed + delay > policy.timeout_s:
            raise PollTimeout(
                msg=f"Timed out waiting for {what} after {elapsed:.0f}s (last value: {describe(value)})",
                context={"probes": attempt, "timeout_s": policy.timeout_s},
            )
        if logger:
            logger.info("⏳ Waiting for %s (last value: %s); next check in %.0fs", what, describe(value), delay)
        sleep(delay)
