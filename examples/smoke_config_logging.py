from __future__ import annotations

import asyncio
import logging

from bitcli.config import ConfigLoadRequest, TomlConfigLoader
from bitcli.logging import init_logging


async def main() -> None:
    config = await TomlConfigLoader().load(ConfigLoadRequest(config_path="examples/config.toml"))
    init_logging(config.logging)

    logger = logging.getLogger("smoke")
    logger.info("Config loaded domain=%s max_concurrent=%s", config.domain, config.max_concurrent)
    logger.info("Logging level=%s caching_enabled=%s", config.logging.level, config.caching_enabled)


if __name__ == "__main__":
    asyncio.run(main())
