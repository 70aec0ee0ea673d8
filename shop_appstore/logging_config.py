"""Logging setup for applications embedding the SDK."""

from __future__ import annotations

import logging

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | int = logging.INFO) -> logging.Logger:
    """Attach a single stream handler to the ``shop_appstore`` logger.

    Safe to call more than once; the handler is not duplicated.
    """
    logger = logging.getLogger("shop_appstore")
    logger.setLevel(level)
    if not any(getattr(h, "_appstore_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._appstore_handler = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger
