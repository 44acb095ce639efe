from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Optional

Ordering = Literal["ordered", "unordered"]


@dataclass(frozen=True, slots=True)
class Bitlink:
    link: str
    id: str

    def __str__(self) -> str:
        return self.link


@dataclass(frozen=True, slots=True)
class CacheRecord:
    long_url: str
    short_url: str
    created_at: datetime
    bitlink_id: Optional[str] = None
    domain: Optional[str] = None
    group_guid: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ShortenOutcome:
    """Result for one input URL of a batch: either short_url or error is set."""

    long_url: str
    short_url: Optional[str] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None
