"""Контроллер пакетного запуска: оркестрация обхода, задач и отчёта.

SOLID:
- SRP: класс связывает сервисы между собой, сам пиксели не трогает.
- DIP: стратегия обработки приходит извне как `Transform`.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, Iterable, Iterator, Optional, TextIO

from rico.config import RicoConfig
from rico.models.batch_model import BatchReport
from rico.models.image_model import SourceFile
from rico.services.discovery_service import discover
from rico.services.output_service import write_report_csv
from rico.services.scheduler_service import Scheduler
from rico.services.transforms import Transform
from rico.utils.log import get_logger

logger = get_logger("controller")

COLLISION_REASON = "output path collides with {owner}"


def _is_within(path: Path, root: Path) -> bool:
    try:
        path.resolve().relative_to(root.resolve())
    except ValueError:
        return False
    return True


def _path_key(path: Path) -> str:
    return os.path.normcase(str(Path(path).resolve()))


def claim_outputs(
    sources: Iterable[SourceFile],
    transform: Transform,
    protected: Optional[Dict[str, Path]] = None,
) -> Iterator[SourceFile]:
    """Закрепляет каждый путь вывода за одним исходником.

    Файл, чей вывод уже занят другим исходником или совпал бы с другим
    исходным файлом из `protected`, помечается пропущенным с указанием владельца.
    Файлы, которые стратегия и так пропустит, путь не занимают.

    Args:
        sources: Файлы-кандидаты.
        transform: Стратегия, определяющая путь вывода.
        protected: Исходные файлы (ключ `_path_key` -> путь), которые нельзя
            перезаписать выводом другого исходника.
    """
    claimed: Dict[str, Path] = {}
    protected = protected or {}
    for source in sources:
        if source.is_skipped:
            yield source
            continue
        request = transform.make_request(source)
        if transform.precheck(request) is not None:
            yield source
            continue
        key = _path_key(request.output_path)
        owner = claimed.get(key)
        if owner is None and key != _path_key(source.path):
            owner = protected.get(key)
        if owner is not None:
            yield replace(source, skip_reason=COLLISION_REASON.format(owner=owner))
            continue
        claimed[key] = source.path
        yield source


@dataclass
class BatchController:
    """Запускает одну пакетную операцию.

    Ответственности:
    - Обход исходной директории (`discover`).
    - Параллельное выполнение стратегии через `Scheduler`.
    - Итоговая сводка и, по запросу, CSV-отчёт.
    """
    source_dir: Path
    transform: Transform
    config: RicoConfig = field(default_factory=RicoConfig)
    report_path: Optional[Path] = None

    def sources(self) -> Iterable[SourceFile]:
        """Файлы-кандидаты.

        Если вывод пишется внутрь исходной директории, список снимается целиком
        до начала записи, чтобы обход не подхватил только что созданные файлы.
        Поддерево вывода при этом не обходится, а выводы не могут заменить
        другой исходный файл.

        Каждый путь вывода достаётся одному исходнику (`claim_outputs`).
        """
        output_dir = self.transform.output_dir
        found = discover(self.source_dir, recursive=self.config.recursive, exclude=output_dir)
        if _is_within(output_dir, self.source_dir) or _is_within(self.source_dir, output_dir):
            snapshot = list(found)
            protected = {_path_key(s.path): s.path for s in snapshot}
            return list(claim_outputs(snapshot, self.transform, protected))
        return claim_outputs(found, self.transform)

    def run(self) -> BatchReport:
        """Raises `DiscoveryError` до начала планирования, если исходная директория недоступна."""
        sources = self.sources()
        scheduler = Scheduler(
            parallelism=self.config.effective_workers,
            in_flight_multiplier=self.config.in_flight_multiplier,
            show_progress=self.config.show_progress,
        )
        logger.info(
            "Старт: %s -> %s (%d потоков)",
            self.source_dir, self.transform.output_dir, scheduler.parallelism,
        )
        report = scheduler.run(sources, self.transform)
        if report.total == 0:
            logger.info("В исходной директории нет файлов.")
        if self.report_path is not None:
            written = write_report_csv(self.report_path, report)
            logger.info("Отчёт: %s", written.resolve())
        return report


def print_summary(report: BatchReport, out: TextIO) -> None:
    """Печатает итоги: обработано, пропущено, ошибок, затем список ошибок по пути."""
    print(
        f"Done. Processed: {report.converted} | Skipped: {report.skipped} | Failed: {report.failed}",
        file=out,
    )
    for failure in report.sorted_failures():
        print(f"  FAILED {failure.path}: {failure.error}", file=out)
