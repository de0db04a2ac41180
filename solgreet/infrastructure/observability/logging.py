"""Logging setup for Solgreet.

Messages carry the fields bound with :func:`log_context`, so every line
emitted while a bootstrap step runs names that step (and the program or
account it works on) without repeating them in each call.
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Iterator

_log_context: ContextVar[dict[str, Any]] = ContextVar("log_context", default={})

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# solana-py logs every RPC round trip through its HTTP stack.
THIRD_PARTY_LOGGERS = ("httpx", "httpcore", "solana", "urllib3", "asyncio")

_configured = False


class ContextualFormatter(logging.Formatter):
    """Formatter that appends ``key=value`` context fields to each line."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        ctx = _log_context.get()
        if not ctx:
            return line
        fields = " ".join(f"{key}={value}" for key, value in ctx.items())
        return f"{line} [{fields}]"


def current_log_context() -> dict[str, Any]:
    return dict(_log_context.get())


@contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """Bind fields to every log line emitted inside the block.

    Usage::

        with log_context(operation="say_hello"):
            logger.info("Saying hello to %s", greeted)

    Nested blocks merge their fields; the outer context is restored on exit.
    """
    token = _log_context.set({**_log_context.get(), **fields})
    try:
        yield
    finally:
        _log_context.reset(token)


def configure_logging(
    level: int = logging.INFO,
    third_party_level: int = logging.WARNING,
) -> None:
    """Install a single stderr handler on the root logger.

    Calling it again only changes the root level.

    Args:
        level: Level for solgreet loggers.
        third_party_level: Level for the RPC and HTTP libraries.
    """
    global _configured
    root = logging.getLogger()
    root.setLevel(level)
    if _configured:
        return
    _configured = True

    for handler in root.handlers[:]:
        root.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(ContextualFormatter(LOG_FORMAT))
    root.addHandler(handler)

    for name in THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)


def get_logger(name: str) -> logging.Logger:
    """Return ``logging.getLogger(name)``.

    When nothing has configured logging yet, the logger gets its own stderr
    handler so library use outside the CLI still shows progress messages.
    """
    logger = logging.getLogger(name)
    if not _configured and not logger.handlers and not logging.getLogger().handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(ContextualFormatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger
