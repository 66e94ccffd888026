from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from trello_sync.config import Settings


def setup_logging(settings: Settings) -> None:
    log_dir = Path(settings.log_dir).expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "trello_sync.log"

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    file_handler = RotatingFileHandler(log_file, maxBytes=2_000_000, backupCount=3)
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    logging.basicConfig(
        level=settings.log_level.upper(),
        handlers=[file_handler, console_handler],
    )
    # request lines from httpx would otherwise leak key/token query params
    logging.getLogger("httpx").setLevel(logging.WARNING)
