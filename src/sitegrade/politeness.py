"""
Crawl politeness policy.

Spaces out requests to the audited site: a jittered delay after every fetch,
exponential backoff when the server throttles, and staggered worker starts
so that concurrent workers do not hit the site in lockstep.
"""

import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional

from sitegrade.constants import EXPONENTIAL_BACKOFF_BASE, POLITENESS_JITTER_RATIO

logger = logging.getLogger(__name__)


class PolitenessPolicy:
    """
    Delay policy shared by all crawl workers.

    Features:
    - Per-fetch delay with random jitter
    - Exponential backoff for throttled requests
    - Start stagger across the worker pool
    - Wait-time accounting
    """

    def __init__(
        self,
        delay: float,
        jitter_ratio: float = POLITENESS_JITTER_RATIO,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize the policy.

        Args:
            delay: Base delay between requests (seconds)
            jitter_ratio: Upper bound of the random jitter, as a fraction of delay
            sleep: Awaitable sleep function (defaults to asyncio.sleep)
            rng: Random source for jitter
        """
        self.delay = max(0.0, delay)
        self.jitter_ratio = jitter_ratio
        self._sleep = sleep or asyncio.sleep
        self._rng = rng or random.Random()

        # Statistics
        self._total_waits = 0
        self._total_wait_time = 0.0

    def politeness_delay(self) -> float:
        """Delay to observe after a fetch: base delay plus jitter."""
        if self.delay <= 0:
            return 0.0
        return self.delay + self._rng.uniform(0, self.delay * self.jitter_ratio)

    def backoff_delay(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (1-based) of a throttled fetch."""
        return self.delay * (EXPONENTIAL_BACKOFF_BASE ** attempt)

    def stagger_delay(self, worker_index: int, worker_count: int) -> float:
        """Start offset for a worker so the pool spreads over one delay window."""
        if worker_count <= 0:
            return 0.0
        return worker_index * self.delay / worker_count

    async def _wait(self, seconds: float) -> float:
        if seconds <= 0:
            return 0.0
        await self._sleep(seconds)
        self._total_waits += 1
        self._total_wait_time += seconds
        return seconds

    async def wait_after_fetch(self) -> float:
        """
        Sleep for the jittered politeness delay.

        Returns:
            Time waited (seconds)
        """
        return await self._wait(self.politeness_delay())

    async def wait_backoff(self, attempt: int) -> float:
        """
        Sleep before retrying a throttled request.

        Args:
            attempt: 1-based retry number

        Returns:
            Time waited (seconds)
        """
        seconds = self.backoff_delay(attempt)
        logger.debug(f"Backing off {seconds:.2f}s before retry {attempt}")
        return await self._wait(seconds)

    async def wait_stagger(self, worker_index: int, worker_count: int) -> float:
        """Sleep for a worker's start offset."""
        return await self._wait(self.stagger_delay(worker_index, worker_count))

    def reset(self) -> None:
        """Reset statistics."""
        self._total_waits = 0
        self._total_wait_time = 0.0

    @property
    def total_waits(self) -> int:
        """Number of sleeps taken."""
        return self._total_waits

    @property
    def total_wait_time(self) -> float:
        """Total time slept (seconds)."""
        return self._total_wait_time
