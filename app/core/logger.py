"""
app/core/logger.py

Centralised logging configuration.
Every module should obtain its logger via:

    from app.core.logger import get_logger
    logger = get_logger(__name__)

Per-submission log lines are tagged with a short run id through
``get_run_logger`` so the interleaved output of overlapping requests
can be told apart.
"""

import logging
import sys
from typing import Any, MutableMapping, Tuple

from app.core.config import settings

_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

# Third-party loggers that are chatty at INFO.
_QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "python_multipart")


def _level() -> int:
    return logging.DEBUG if settings.debug else logging.INFO


def _configure_root_logger() -> None:
    """Attach a stdout handler to the root logger, once."""
    root = logging.getLogger()
    if root.handlers:
        # Already configured (pytest, uvicorn --log-config …); leave it alone.
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(_level())
    handler.setFormatter(logging.Formatter(fmt=_LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    root.setLevel(_level())
    root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


_configure_root_logger()


class RunLoggerAdapter(logging.LoggerAdapter):
    """Prefixes every message with ``[<kind> <run_id>]``."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        return f"[{self.extra['kind']} {self.extra['run_id']}] {msg}", kwargs


def get_logger(name: str) -> logging.Logger:
    """Return a named logger."""
    return logging.getLogger(name)


def get_run_logger(name: str, kind: str, run_id: str) -> RunLoggerAdapter:
    """
    Return a logger bound to a single submission run.

    >>> log = get_run_logger(__name__, "quote", "3f9a1c2e")
    >>> log.info("Parsing")     # … | [quote 3f9a1c2e] Parsing
    """
    return RunLoggerAdapter(logging.getLogger(name), {"kind": kind, "run_id": run_id})
