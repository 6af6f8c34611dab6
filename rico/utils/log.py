"""Логирование: именованные логгеры в пространстве `rico`."""
from __future__ import annotations

import logging
import sys
from typing import Union

ROOT_LOGGER = "rico"
LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def get_logger(name: str) -> logging.Logger:
    """Возвращает логгер `rico.<name>` (или сам `rico`)."""
    if name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def setup_logging(level: Union[int, str] = logging.INFO) -> logging.Logger:
    """Настраивает вывод логов `rico` в текущий stderr.

    Повторный вызов заменяет ранее установленный обработчик, а не добавляет второй.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger = logging.getLogger(ROOT_LOGGER)
    for old in [h for h in logger.handlers if getattr(h, "_rico_handler", False)]:
        logger.removeHandler(old)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._rico_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger
