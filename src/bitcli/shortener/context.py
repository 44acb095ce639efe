from __future__ import annotations

import logging
from typing import Optional

from bitcli.cache.store import ShortLinkCache
from bitcli.config.models import AppConfig
from bitcli.provider.bitly import BitlyClient
from bitcli.provider.interfaces import ShortLinkProvider
from bitcli.shortener.gate import ConcurrencyGate
from bitcli.shortener.pipeline import ShortenerPipeline

logger = logging.getLogger(__name__)


class AppContext:
    """
    Process-wide resources, built once the configuration is resolved.

    Use as an async context manager so the provider session and the cache
    connection are closed on exit.
    """

    def __init__(
        self,
        *,
        config: AppConfig,
        cache: ShortLinkCache,
        gate: ConcurrencyGate,
        provider: ShortLinkProvider,
    ) -> None:
        self.config = config
        self.cache = cache
        self.gate = gate
        self.provider = provider
        self.pipeline = ShortenerPipeline(config=config, cache=cache, gate=gate, provider=provider)

    @classmethod
    async def create(cls, config: AppConfig, *, provider: Optional[ShortLinkProvider] = None) -> AppContext:
        cache = await ShortLinkCache.open(config.cache_path)
        logger.debug(
            "Application context created. cache_enabled=%s max_concurrent=%d offline=%s",
            cache.enabled,
            config.max_concurrent,
            config.offline,
        )
        return cls(
            config=config,
            cache=cache,
            gate=ConcurrencyGate(config.max_concurrent),
            provider=provider if provider is not None else BitlyClient(config=config),
        )

    async def close(self) -> None:
        try:
            await self.provider.close()
        finally:
            await self.cache.close()

    async def __aenter__(self) -> AppContext:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
