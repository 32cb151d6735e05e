from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Iterable, Union


LOG_FILE = "modproxy.log"
FILE_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logging(
    log_dir: str = "logs",
    *,
    level: Union[int, str] = logging.INFO,
    share_with: Iterable[str] = ("uvicorn.error",),
) -> logging.Logger:
    """
    Configure the ``modproxy`` logger: a rotating file in ``log_dir`` and the
    console.  Loggers named in ``share_with`` (the server's lifecycle log)
    get the same handlers.  Calling it again does not duplicate handlers.
    """
    os.makedirs(log_dir, exist_ok=True)

    logger = logging.getLogger("modproxy")
    logger.setLevel(level)
    logger.propagate = False

    if not any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
        fh = RotatingFileHandler(os.path.join(log_dir, LOG_FILE), maxBytes=1_000_000, backupCount=5, encoding="utf-8")
        fh.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(fh)

    if not any(type(h) is logging.StreamHandler for h in logger.handlers):
        sh = logging.StreamHandler()
        sh.setFormatter(logging.Formatter("%(asctime)s %(message)s"))
        logger.addHandler(sh)

    for name in share_with:
        other = logging.getLogger(name)
        other.setLevel(level)
        other.propagate = False
        for h in logger.handlers:
            if h not in other.handlers:
                other.addHandler(h)

    return logger
