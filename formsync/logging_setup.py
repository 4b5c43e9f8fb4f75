"""Central logging configuration.

One stdout handler on the root logger so every module logger emits without
per-module setup. The reconciliation logger runs at DEBUG when
FORMSYNC_DEBUG_RECONCILIATION is set, to expose absorbed no-op transitions.
"""
from __future__ import annotations
import logging
import os
from logging.config import dictConfig

_DICT_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s %(levelname)s:%(name)s:%(message)s",
        }
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "level": "DEBUG",
            "formatter": "default",
            "stream": "ext://sys.stdout",
        }
    },
    "root": {"level": "INFO", "handlers": ["console"]},
    "loggers": {
        "uvicorn": {"level": "INFO", "handlers": ["console"], "propagate": False},
        "uvicorn.access": {"level": "INFO", "handlers": ["console"], "propagate": False},
        "httpx": {"level": "WARNING"},
    },
}


def configure_logging() -> None:
    """Configure application-wide logging once; later calls are no-ops."""
    root = logging.getLogger()
    if root.handlers:
        return
    dictConfig(_DICT_CONFIG)
    if os.getenv("FORMSYNC_DEBUG_RECONCILIATION", "").strip().lower() in {"1", "true", "yes", "on"}:
        logging.getLogger("formsync.logic.reconciliation").setLevel(logging.DEBUG)
