# backend/gpadmin/core/logging.py
"""
Единая настройка логирования.

Все модули берут логгер через get_logger(__name__); вывод идёт в stderr,
уровень и формат берутся из настроек (LOG_LEVEL / LOG_FORMAT).
"""

import logging
import sys

from .config import get_settings

_CONFIGURED = False
_DEFAULT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None, fmt: str | None = None) -> None:
    """Идемпотентно настраивает корневой логгер.

    Повторный вызов только меняет уровень.
    """
    global _CONFIGURED
    settings = get_settings()
    root = logging.getLogger()

    level = (level or settings.LOG_LEVEL).upper()
    fmt = fmt or settings.LOG_FORMAT or _DEFAULT_FORMAT

    if _CONFIGURED:
        root.setLevel(getattr(logging, level, logging.INFO))
        return

    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setFormatter(logging.Formatter(fmt))
    root.addHandler(handler)
    root.setLevel(getattr(logging, level, logging.INFO))
    _CONFIGURED = True


def get_logger(name: str | None = None) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)
