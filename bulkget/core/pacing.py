"""
Provides the pacing strategies applied between two consecutive dispatches.
"""

import asyncio
import logging
import random

log = logging.getLogger(__name__)


class FixedWait:
    """Waits the same number of seconds before every dispatch."""

    def __init__(self, amount: int = 0):
        self.amount = amount

    async def wait(self) -> None:
        if self.amount <= 0:
            return
        log.debug(f"Waiting {self.amount}s before next download")
        await asyncio.sleep(self.amount)


class RandomWait:
    """
    Waits a random, whole number of seconds between zero and the configured
    amount (both inclusive) before every dispatch.
    """

    def __init__(self, amount: int, rng: random.Random | None = None):
        """
        Initializes the strategy.

        Args:
            amount: The upper bound of the delay, in seconds.
            rng: Random number generator, mostly useful for tests.
        """
        self.amount = amount
        self._rng = rng or random.Random()

    def next_delay(self) -> int:
        return self._rng.randint(0, self.amount)

    async def wait(self) -> None:
        delay = self.next_delay()
        log.debug(f"Waiting {delay}s (random, max {self.amount}s) before next download")
        if delay:
            await asyncio.sleep(delay)


def select_wait_strategy(amount: int, randomize: bool) -> FixedWait | RandomWait:
    """Random pacing only makes sense with a positive upper bound."""
    if randomize and amount > 0:
        return RandomWait(amount)
    return FixedWait(max(amount, 0))
