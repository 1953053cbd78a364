"""Central logging configuration for the form builder engine.

Installs a single stdout handler on the root logger so every module logger
(``logging.getLogger(__name__)``) emits without per-module setup.
"""

import logging
from logging.config import dictConfig

from formbuilder.config import get_settings


def _dict_config(level: str) -> dict:
    return {
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
                "level": level,
                "formatter": "default",
                "stream": "ext://sys.stdout",
            }
        },
        "root": {"level": level, "handlers": ["console"]},
        "loggers": {
            "sqlalchemy.engine": {"level": "WARNING", "propagate": True},
        },
    }


def configure_logging() -> None:
    """Configure application-wide logging once.

    Returns early when the root logger already has handlers so repeated calls
    (reloaders, test runners) do not duplicate output.
    """
    root = logging.getLogger()
    if root.handlers:
        return
    dictConfig(_dict_config(get_settings().log_level.upper()))
