"""Конфигурация запуска: значения по умолчанию, JSON-файл и флаги CLI.

Приоритет (от низшего к высшему): значения по умолчанию -> JSON -> флаги CLI.
"""
from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

from rico.errors import ConfigError
from rico.services.scheduler_service import default_parallelism

DEFAULT_CONFIG_FILE = "rico.json"


@dataclass(frozen=True)
class RicoConfig:
    """Параметры пакетного запуска.

    Fields:
        workers: Размер пула потоков; None = число ядер.
        in_flight_multiplier: Сколько задач на поток держать в полёте.
        recursive: Обходить ли вложенные директории.
        edge_threshold: Порог границ для `remove`.
        show_progress: Показывать ли индикатор прогресса.
        log_level: Уровень логирования (`DEBUG`, `INFO`, ...).
    """
    workers: Optional[int] = None
    in_flight_multiplier: int = 2
    recursive: bool = True
    edge_threshold: int = 30
    show_progress: bool = True
    log_level: str = "INFO"

    @property
    def effective_workers(self) -> int:
        return self.workers if self.workers is not None else default_parallelism()

    def merged(self, overrides: Dict[str, Any]) -> "RicoConfig":
        """Возвращает копию с переопределёнными полями; `None` в overrides игнорируется."""
        values = {k: v for k, v in overrides.items() if v is not None}
        return validate(replace(self, **_check_keys(values)))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _check_keys(values: Dict[str, Any]) -> Dict[str, Any]:
    known = {f.name for f in fields(RicoConfig)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigError(f"Неизвестные параметры конфигурации: {', '.join(unknown)}")
    return values


def validate(cfg: RicoConfig) -> RicoConfig:
    """Проверяет типы и диапазоны значений.

    Raises:
        ConfigError: при неверном значении.
    """
    def is_int(v: Any) -> bool:
        return isinstance(v, int) and not isinstance(v, bool)

    if cfg.workers is not None and (not is_int(cfg.workers) or cfg.workers < 1):
        raise ConfigError(f"workers должен быть целым >= 1, получено {cfg.workers!r}")
    if not is_int(cfg.in_flight_multiplier) or cfg.in_flight_multiplier < 1:
        raise ConfigError(f"in_flight_multiplier должен быть целым >= 1, получено {cfg.in_flight_multiplier!r}")
    if not is_int(cfg.edge_threshold) or not 0 <= cfg.edge_threshold <= 255:
        raise ConfigError(f"edge_threshold должен быть целым 0..255, получено {cfg.edge_threshold!r}")
    if not isinstance(cfg.recursive, bool):
        raise ConfigError(f"recursive должен быть true/false, получено {cfg.recursive!r}")
    if not isinstance(cfg.show_progress, bool):
        raise ConfigError(f"show_progress должен быть true/false, получено {cfg.show_progress!r}")
    if not isinstance(cfg.log_level, str) or not isinstance(logging.getLevelName(cfg.log_level.upper()), int):
        raise ConfigError(f"log_level должен быть именем уровня (DEBUG, INFO, ...), получено {cfg.log_level!r}")
    return cfg


def load_config_file(path: Path) -> Dict[str, Any]:
    """Читает JSON-объект конфигурации.

    Raises:
        ConfigError: если файл не читается, не является JSON или не объект.
    """
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as exc:
        raise ConfigError(f"Не удалось прочитать конфигурацию {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Неверный JSON в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Конфигурация {path} должна быть JSON-объектом")
    return data


def load_config(
    path: Optional[str | Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
    cwd: Optional[Path] = None,
) -> RicoConfig:
    """Собирает итоговую конфигурацию.

    Args:
        path: Явный путь к JSON; если не задан, берётся `rico.json` из `cwd`, если он есть.
        overrides: Значения из CLI (None = не задано).
        cwd: Директория для поиска файла по умолчанию.

    Raises:
        ConfigError: если явно указанный файл не существует или значения неверны.
    """
    cfg = RicoConfig()
    if path is not None:
        config_path = Path(path)
        if not config_path.is_file():
            raise ConfigError(f"Файл конфигурации не найден: {config_path}")
        cfg = cfg.merged(load_config_file(config_path))
    else:
        default_path = (cwd or Path.cwd()) / DEFAULT_CONFIG_FILE
        if default_path.is_file():
            cfg = cfg.merged(load_config_file(default_path))
    return cfg.merged(overrides or {})
