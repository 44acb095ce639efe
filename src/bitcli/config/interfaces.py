from __future__ import annotations

from typing import Protocol

from bitcli.config.models import AppConfig, ConfigLoadRequest


class ConfigLoader(Protocol):
    """
    Loads effective runtime configuration.

    Precedence, lowest first: imported fragments, the importing file, environment
    overrides, then the command-line options carried on the request.
    """

    async def load(self, request: ConfigLoadRequest) -> AppConfig:
        ...
