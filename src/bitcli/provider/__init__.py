"""Remote short link providers."""

from bitcli.provider.bitly import BitlyClient, BitlyUser
from bitcli.provider.interfaces import ShortLinkProvider
from bitcli.provider.mock import MockShortLinkProvider

__all__ = ["BitlyClient", "BitlyUser", "MockShortLinkProvider", "ShortLinkProvider"]
