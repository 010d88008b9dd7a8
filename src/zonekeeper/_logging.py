"""Logging utilities for zonekeeper."""

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

# The host application decides where records go
logging.getLogger("zonekeeper").addHandler(logging.NullHandler())

# Domain whose challenge record is being set or removed
_current_domain: ContextVar[str | None] = ContextVar("current_domain", default=None)


@contextmanager
def domain_context(domain: str) -> Iterator[None]:
    """Tag every record logged inside the block with ``domain``.

    Contexts nest; leaving the block restores the outer domain.

    Usage:
        with domain_context("example.com"):
            logger.info("Setting ACME challenge", extra=get_domain_extra())
    """
    token = _current_domain.set(domain)
    try:
        yield
    finally:
        _current_domain.reset(token)


def get_domain_extra(**fields: Any) -> dict[str, Any]:
    """Build the ``extra`` mapping for a log call.

    Args:
        **fields: Additional structured fields for the record.

    Returns:
        ``fields`` plus ``domain`` when a domain context is active.
    """
    domain = _current_domain.get()
    if domain is None:
        return dict(fields)
    return {"domain": domain, **fields}


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the zonekeeper namespace.

    Args:
        name: The module name (typically __name__).
    """
    return logging.getLogger(name)


class Timer:
    """Wall-clock timer for propagation waits and snapshot writes.

    Usage:
        with Timer() as t:
            storage.write(blob)
        logger.debug("Persisted store snapshot", extra={"bytes": n, **t.extra})
    """

    def __init__(self) -> None:
        self.elapsed_ms: float = 0
        self._start: float = 0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, *args: object) -> None:
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000

    @property
    def extra(self) -> dict[str, float]:
        """``elapsed_ms`` rounded to a tenth of a millisecond, for log extras."""
        return {"elapsed_ms": round(self.elapsed_ms, 1)}
