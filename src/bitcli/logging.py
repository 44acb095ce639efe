from __future__ import annotations

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional

from bitcli.config.models import LoggingSettings

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def init_logging(settings: LoggingSettings, *, level: Optional[str] = None) -> None:
    """
    Configure the root logger: stderr always, plus a daily rotating file when configured.

    ``level`` overrides ``settings.level`` (e.g. from the command line). Stdout is left
    alone since it carries the shortened URLs.
    """
    effective_level = (level or settings.level).upper()
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(effective_level)

    formatter = logging.Formatter(_FORMAT)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if settings.file is not None:
        log_path = Path(settings.file.path).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            log_path,
            when="midnight",
            backupCount=settings.file.rotation.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # aiohttp access and client logs stay at WARNING or above.
    logging.getLogger("aiohttp").setLevel(max(logging.WARNING, root.level))
