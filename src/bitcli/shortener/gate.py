from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

from bitcli.config.models import DEFAULT_MAX_CONCURRENT

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Permit:
    released: bool = False


class ConcurrencyGate:
    """
    Bounds how many provider requests are in flight at once.

    Waiters are admitted in FIFO order as permits are released.
    """

    def __init__(self, max_concurrent: int = DEFAULT_MAX_CONCURRENT) -> None:
        if max_concurrent < 1:
            raise ValueError(f"max_concurrent must be >= 1, got {max_concurrent}")
        self._max_concurrent = max_concurrent
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._outstanding = 0

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    @property
    def outstanding(self) -> int:
        return self._outstanding

    async def admit(self) -> Permit:
        await self._semaphore.acquire()
        self._outstanding += 1
        logger.debug("Gate permit acquired. outstanding=%d max=%d", self._outstanding, self._max_concurrent)
        return Permit()

    def release(self, permit: Permit) -> None:
        if permit.released:
            return
        permit.released = True
        self._outstanding -= 1
        self._semaphore.release()

    @asynccontextmanager
    async def permit(self) -> AsyncIterator[Permit]:
        permit = await self.admit()
        try:
            yield permit
        finally:
            self.release(permit)
