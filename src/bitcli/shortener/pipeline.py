from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Dict, Iterable

from bitcli.cache.store import ShortLinkCache
from bitcli.config.models import AppConfig
from bitcli.core.errors import OfflineCacheMiss, ShortenCancelled, ShortenError
from bitcli.core.models import Ordering, ShortenOutcome
from bitcli.core.urls import normalize_url
from bitcli.provider.interfaces import ShortLinkProvider
from bitcli.shortener.gate import ConcurrencyGate

logger = logging.getLogger(__name__)


def _consume_outcome(future: asyncio.Future) -> None:
    # Waiters are optional; mark the exception as retrieved so asyncio does not log it.
    if not future.cancelled():
        future.exception()


class ShortenerPipeline:
    """
    Cache-through shortening with per-URL request deduplication.

    The first caller for a normalized URL becomes its driver: it consults the cache
    and, on a miss, calls the provider under a gate permit. Concurrent callers for
    the same URL wait on the driver's future and receive the identical outcome.
    Failures are published to waiters but never cached.
    """

    def __init__(
        self,
        *,
        config: AppConfig,
        cache: ShortLinkCache,
        gate: ConcurrencyGate,
        provider: ShortLinkProvider,
    ) -> None:
        self._config = config
        self._cache = cache
        self._gate = gate
        self._provider = provider
        self._in_flight: Dict[str, asyncio.Future[str]] = {}

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    async def shorten(self, long_url: str) -> str:
        key = normalize_url(long_url)

        # No await between the lookup and the insert, so only one driver per key.
        pending = self._in_flight.get(key)
        if pending is not None:
            logger.debug("Joining in-flight request. long_url=%s", key)
            return await asyncio.shield(pending)

        future: asyncio.Future[str] = asyncio.get_running_loop().create_future()
        future.add_done_callback(_consume_outcome)
        self._in_flight[key] = future
        try:
            short_url = await self._drive(key)
        except Exception as exc:
            future.set_exception(exc)
            raise
        else:
            future.set_result(short_url)
            return short_url
        finally:
            if not future.done():
                future.set_exception(ShortenCancelled(key))
            self._in_flight.pop(key, None)

    async def _drive(self, key: str) -> str:
        record = await self._cache.get(key)
        if record is not None:
            return record.short_url

        if self._config.offline:
            raise OfflineCacheMiss(key)

        async with self._gate.permit():
            link = await self._provider.create_short_link(
                key,
                domain=self._config.domain,
                group_guid=self._config.default_group_guid,
            )

        await self._cache.put(
            key,
            link,
            domain=self._config.domain,
            group_guid=self._config.default_group_guid,
        )
        logger.info("Short link created. long_url=%s short_url=%s", key, link.link)
        return link.link

    async def _outcome(self, long_url: str) -> ShortenOutcome:
        try:
            short_url = await self.shorten(long_url)
        except ShortenError as exc:
            logger.debug("Shortening failed. long_url=%s error=%s", long_url, exc)
            return ShortenOutcome(long_url=long_url, error=exc)
        return ShortenOutcome(long_url=long_url, short_url=short_url)

    async def iter_outcomes(
        self,
        urls: Iterable[str],
        *,
        ordering: Ordering = "ordered",
    ) -> AsyncIterator[ShortenOutcome]:
        """
        Shorten a batch of URLs concurrently, yielding one outcome per input.

        ``ordered`` yields in input order; ``unordered`` yields as results complete.
        A failing URL yields an outcome with ``error`` set and does not stop the batch.
        """
        tasks = [asyncio.create_task(self._outcome(url)) for url in urls]
        try:
            if ordering == "ordered":
                for task in tasks:
                    yield await task
            else:
                for next_done in asyncio.as_completed(tasks):
                    yield await next_done
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
