from __future__ import annotations

from typing import Optional, Protocol

from bitcli.core.models import Bitlink


class ShortLinkProvider(Protocol):
    async def create_short_link(
        self,
        long_url: str,
        *,
        domain: Optional[str] = None,
        group_guid: Optional[str] = None,
    ) -> Bitlink:
        """Create a short link, raising ProviderError on any failure."""

    async def close(self) -> None:
        """Release network resources."""
