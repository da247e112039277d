"""Bounded polling for "wait until" style checks."""

import time
from collections.abc import Callable
from dataclasses import dataclass

from loguru import logger

DEFAULT_POLL_INTERVAL = 0.25
DEFAULT_TIMEOUT = 5.0


@dataclass
class PollResult:
    """Outcome of a poll loop."""

    succeeded: bool
    ticks: int
    elapsed: float


class Poller:
    """Re-runs a check at a fixed interval until it passes or time runs out.

    Each tick calls ``check`` from scratch; nothing is remembered between
    ticks. The sleep between ticks never runs past the deadline, and the
    check always runs at least once.

    Example:
        poller = Poller(timeout=2, interval=0.1)
        result = poller.run(lambda: server.is_ready())
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        interval: float = DEFAULT_POLL_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if timeout < 0:
            raise ValueError("timeout must not be negative")
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.timeout = timeout
        self.interval = interval
        self._clock = clock
        self._sleep = sleep

    def run(self, check: Callable[[], bool]) -> PollResult:
        start = self._clock()
        deadline = start + self.timeout
        ticks = 0

        while True:
            ticks += 1
            if check():
                elapsed = self._clock() - start
                logger.debug("Poll succeeded on tick {} after {:.2f}s", ticks, elapsed)
                return PollResult(succeeded=True, ticks=ticks, elapsed=elapsed)

            now = self._clock()
            if now >= deadline:
                return PollResult(succeeded=False, ticks=ticks, elapsed=now - start)

            logger.debug("Poll tick {} did not match, retrying", ticks)
            self._sleep(min(self.interval, deadline - now))
