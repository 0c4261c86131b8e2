import itertools
import logging
import os
import sys
from typing import IO, Optional

LOGGER_NAME = "tradedash"

# Upstream calls run on pool threads, so the thread name is part of every line.
DEFAULT_FORMAT = "%(asctime)s.%(msecs)03d | %(levelname)s | %(threadName)s | %(seq)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_SEQ = itertools.count(1)


class _SeqFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.seq = next(_SEQ)  # type: ignore[attr-defined]
        return True


def setup_logger(level: Optional[str] = None, stream: Optional[IO[str]] = None) -> logging.Logger:
    """
    Configure the ``tradedash`` logger.
    Level comes from the argument, else LOG_LEVEL (default INFO); the line
    format from LOG_FORMAT, else DEFAULT_FORMAT. Safe to call repeatedly.
    """
    level = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    fmt = os.getenv("LOG_FORMAT") or DEFAULT_FORMAT

    log = logging.getLogger(LOGGER_NAME)
    log.setLevel(level)
    log.propagate = False

    for h in list(log.handlers):
        log.removeHandler(h)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(level)
    handler.addFilter(_SeqFilter())
    handler.setFormatter(logging.Formatter(fmt=fmt, datefmt=DATE_FORMAT))
    log.addHandler(handler)

    return log
