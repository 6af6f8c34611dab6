"""Запись результатов на диск: изображения и CSV-отчёт."""
from __future__ import annotations

import csv
import os
import tempfile
from pathlib import Path

from rico.models.batch_model import BatchReport
from rico.services.discovery_service import TEMP_PREFIX
from rico.utils.log import get_logger

logger = get_logger("output")


class OutputWriter:
    """Пишет байты через временный файл в той же директории и `os.replace`.

    На POSIX замена атомарна: читатель видит либо старый файл, либо новый.
    На Windows `os.replace` атомарен только в пределах одного тома и падает,
    если файл назначения открыт другим процессом; частичного файла при этом
    всё равно не остаётся.
    """

    def __init__(self, fsync: bool = True) -> None:
        self._fsync = fsync

    def write(self, data: bytes, destination: str | Path) -> Path:
        """Записывает `data` в `destination`, перезаписывая существующий файл.

        Родительские директории создаются при необходимости. При ошибке
        временный файл удаляется, а исключение пробрасывается дальше.
        """
        dest = Path(destination)
        dest.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            dir=dest.parent, prefix=f"{TEMP_PREFIX}{dest.name}-", suffix=".tmp"
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                if self._fsync:
                    os.fsync(f.fileno())
            os.replace(tmp_path, dest)
        except BaseException:
            try:
                tmp_path.unlink()
            except FileNotFoundError:
                pass
            raise
        logger.debug("Записан %s (%d байт)", dest, len(data))
        return dest


def write_report_csv(out_path: str | Path, report: BatchReport) -> Path:
    """Пишет по строке на каждый исход, отсортировав по исходному пути.

    Args:
        out_path: Путь CSV-файла.
        report: Финализированный отчёт.

    Returns:
        Path: Путь записанного файла.
    """
    path = Path(out_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["path", "outcome", "output_path", "reason", "error"])
        for o in report.sorted_outcomes():
            writer.writerow([
                str(o.source_path),
                o.kind.value,
                str(o.output_path) if o.output_path else "",
                o.reason or "",
                o.error or "",
            ])
    return path
