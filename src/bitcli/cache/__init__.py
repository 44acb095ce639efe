"""Persistent short link cache."""

from bitcli.cache.store import ShortLinkCache

__all__ = ["ShortLinkCache"]
