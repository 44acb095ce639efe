from __future__ import annotations

from typing import Any, Optional, Sequence


class ShortenError(Exception):
    """Failure to shorten a single URL. Other URLs in the same batch are unaffected."""


class InvalidUrl(ShortenError):
    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Invalid URL '{url}': {reason}")
        self.url = url
        self.reason = reason


class ProviderError(ShortenError):
    """
    The shortening provider rejected the request or could not be reached.

    ``status`` is the HTTP status code, or None for transport failures (timeouts,
    connection errors) and for responses the provider sent without an error status.
    """

    def __init__(
        self,
        message: str,
        *,
        status: Optional[int] = None,
        description: Optional[str] = None,
        resource: Optional[str] = None,
        errors: Optional[Sequence[Any]] = None,
    ) -> None:
        self.message = message
        self.status = status
        self.description = description
        self.resource = resource
        self.errors = tuple(errors or ())
        super().__init__(self._render())

    def _render(self) -> str:
        status = self.status if self.status is not None else "-"
        text = f"Provider request failed (status={status}): {self.message}"
        if self.resource:
            text += f" ({self.resource})"
        if self.description:
            text += f": {self.description}"
        return text


class CacheError(ShortenError):
    """The cache store is enabled but unusable."""


class OfflineCacheMiss(ShortenError):
    def __init__(self, url: str) -> None:
        super().__init__(f"No cached short link for '{url}' and offline mode is enabled")
        self.url = url


class ShortenCancelled(ShortenError):
    def __init__(self, url: str) -> None:
        super().__init__(f"Shortening '{url}' was cancelled")
        self.url = url
