"""Root logger configuration: console plus a rotating ``signalgrid.log``
(1 MB, 2 backups). Call :func:`setup_logging` once at startup."""

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

def resolve_level(level: Union[int, str, None]) -> int:
    if level is None:
        level = os.environ.get("SIGNALGRID_LOG_LEVEL", "INFO")
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO

def setup_logging(level: Union[int, str, None] = None, log_file: Optional[str] = "signalgrid.log") -> None:
    root = logging.getLogger()
    root.setLevel(resolve_level(level))

    fmt = logging.Formatter(LOG_FORMAT)

    ch = logging.StreamHandler()
    ch.setFormatter(fmt)

    root.handlers.clear()
    root.addHandler(ch)

    if log_file:
        fh = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=2)
        fh.setFormatter(fmt)
        root.addHandler(fh)
