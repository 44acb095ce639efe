from __future__ import annotations

import asyncio
import hashlib
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from bitcli.core.errors import ProviderError
from bitcli.core.models import Bitlink


@dataclass(slots=True)
class MockShortLinkProvider:
    """
    A deterministic provider for exercising the pipeline without network access.

    Short links are derived from a hash of the long URL. Errors queued in ``failures``
    are raised once for their URL, then the URL succeeds again.
    """

    domain: str = "bit.ly"
    delay_seconds: float = 0.0
    failures: Dict[str, List[ProviderError]] = field(default_factory=dict)
    calls: List[str] = field(default_factory=list)
    in_flight: int = 0
    peak_in_flight: int = 0

    async def create_short_link(
        self,
        long_url: str,
        *,
        domain: Optional[str] = None,
        group_guid: Optional[str] = None,
    ) -> Bitlink:
        self.calls.append(long_url)
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            if self.delay_seconds:
                await asyncio.sleep(self.delay_seconds)
            queued = self.failures.get(long_url)
            if queued:
                raise queued.pop(0)
            digest = hashlib.sha256(long_url.encode("utf-8")).hexdigest()[:7]
            host = domain or self.domain
            return Bitlink(link=f"https://{host}/{digest}", id=f"{host}/{digest}")
        finally:
            self.in_flight -= 1

    async def close(self) -> None:
        return None
