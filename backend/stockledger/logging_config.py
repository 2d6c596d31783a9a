# Overview: Application logging setup; one formatted stream handler on the Flask logger.

from __future__ import annotations

import logging
import sys

from flask import Flask
from flask.logging import default_handler

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


class _StockLedgerHandler(logging.StreamHandler):
    """Marker subclass so repeated create_app() calls don't stack handlers."""


def configure_logging(app: Flask) -> None:
    level = logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    if not isinstance(level, int):
        level = logging.INFO

    app.logger.setLevel(level)
    app.logger.removeHandler(default_handler)

    if not any(isinstance(h, _StockLedgerHandler) for h in app.logger.handlers):
        handler = _StockLedgerHandler(sys.stdout)
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        app.logger.addHandler(handler)
