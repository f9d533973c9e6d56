"""Bounded scheduling for network fan-out."""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

T = TypeVar("T")
R = TypeVar("R")


class BatchScheduler:
    """Run an async worker over items in sequential waves.

    Scheduling policy: items are split into consecutive waves of at most
    ``limit`` items. Every call in a wave starts together and the scheduler
    waits for the whole wave before starting the next one, so no more than
    ``limit`` calls issued by one scheduler are ever in flight. Results come
    back in input order. The worker is expected to handle its own errors;
    an exception escaping it propagates after its wave completes.
    """

    def __init__(self, limit: int = 5):
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self.limit = limit
        self._semaphore = asyncio.Semaphore(limit)
        self.in_flight = 0
        self.peak_in_flight = 0

    async def _run(self, worker: Callable[[T], Awaitable[R]], item: T) -> R:
        async with self._semaphore:
            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
            try:
                return await worker(item)
            finally:
                self.in_flight -= 1

    async def map(self, items: Sequence[T], worker: Callable[[T], Awaitable[R]]) -> list[R]:
        results: list[R] = []
        for start in range(0, len(items), self.limit):
            wave = items[start:start + self.limit]
            results.extend(await asyncio.gather(*(self._run(worker, item) for item in wave)))
        return results
