from bitcli.core.errors import (
    CacheError,
    InvalidUrl,
    OfflineCacheMiss,
    ProviderError,
    ShortenCancelled,
    ShortenError,
)
from bitcli.core.models import Bitlink, CacheRecord, Ordering, ShortenOutcome
from bitcli.core.urls import normalize_url

__all__ = [
    "Bitlink",
    "CacheError",
    "CacheRecord",
    "InvalidUrl",
    "OfflineCacheMiss",
    "Ordering",
    "ProviderError",
    "ShortenCancelled",
    "ShortenError",
    "ShortenOutcome",
    "normalize_url",
]
