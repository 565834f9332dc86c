"""
Process-wide logging setup.

Modules log through ``logging.getLogger(__name__)``; this only wires the
root handler once, for the API process and the batch jobs alike.
"""
import logging
import sys

from narrata.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str | None = None) -> logging.Logger:
    """Attach a stdout handler to the root logger (idempotent)."""
    root = logging.getLogger()
    root.setLevel((level or settings.LOG_LEVEL).upper())

    if any(getattr(h, "_narrata", False) for h in root.handlers):
        return root

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    handler._narrata = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    return root
