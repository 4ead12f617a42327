from __future__ import annotations

import logging

DEFAULT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "WARNING") -> None:
    """Configure root logging with a consistent format."""

    logging.basicConfig(level=level.upper(), format=DEFAULT_FORMAT)
    logging.getLogger("taskmap").setLevel(level.upper())
    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)


__all__ = ["configure_logging"]
