"""memquery logging.

The library only ever logs through the ``memquery`` logger; applications opt
into output with ``configure_logging``.
"""

import logging
from typing import Dict


_LEVEL_ABBREV: Dict[int, str] = {
    logging.DEBUG: "DEBG",
    logging.INFO: "INFO",
    logging.WARNING: "WARN",
    logging.ERROR: "ERRO",
    logging.CRITICAL: "ERRO",
}


class _AbbrevLevelFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        record.levelabbr = _LEVEL_ABBREV.get(record.levelno, record.levelname[:4])
        return super().format(record)


log = logging.getLogger("memquery")
log.addHandler(logging.NullHandler())


def configure_logging(level: str = "INFO") -> None:
    """Send memquery logs to stderr as: mm-dd HH:MM:SS [<LVL>] <message>"""
    resolved_level = getattr(logging, (level or "INFO").upper(), logging.INFO)

    handler = logging.StreamHandler()
    handler.setFormatter(_AbbrevLevelFormatter(
        fmt="%(asctime)s [%(levelabbr)s] %(message)s",
        datefmt="%m-%d %H:%M:%S",
    ))

    log.handlers.clear()
    log.addHandler(handler)
    log.setLevel(resolved_level)
    log.propagate = False
