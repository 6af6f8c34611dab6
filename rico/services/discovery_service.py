"""Обход исходной директории и отбор файлов-кандидатов."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Iterator

from rico.errors import DiscoveryError
from rico.models.image_model import ImageFormat, SourceFile
from rico.utils.log import get_logger

logger = get_logger("discovery")

UNSUPPORTED_REASON = "unsupported format"
TEMP_PREFIX = ".rico-"


def discover(
    source_dir: str | Path,
    recursive: bool = True,
    exclude: str | Path | None = None,
) -> Iterator[SourceFile]:
    """Лениво перечисляет файлы директории.

    Каждый обычный файл даёт ровно один `SourceFile`; файлы с неподдерживаемым
    расширением помечаются `skip_reason` и до декодера не доходят.
    Порядок не гарантируется.

    Args:
        source_dir: Корень обхода.
        recursive: Заходить ли во вложенные директории.
        exclude: Поддерево, которое не обходится (например, директория вывода
            внутри исходной).

    Raises:
        DiscoveryError: если путь не существует или не является директорией.
            Проверка выполняется сразу, до начала итерации.
    """
    root = Path(source_dir)
    if not root.exists():
        raise DiscoveryError(f"Исходная директория не найдена: {root}")
    if not root.is_dir():
        raise DiscoveryError(f"Не является директорией: {root}")
    excluded = Path(exclude).resolve() if exclude is not None else None
    if excluded is not None and excluded == root.resolve():
        excluded = None
    return _walk(root, recursive, excluded)


def _walk(root: Path, recursive: bool, excluded: Path | None) -> Iterator[SourceFile]:
    def on_error(exc: OSError) -> None:
        logger.warning("Не удалось прочитать директорию %s: %s", exc.filename, exc.strerror or exc)

    for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
        if not recursive:
            dirnames.clear()
        elif excluded is not None:
            dirnames[:] = [d for d in dirnames if (Path(dirpath) / d).resolve() != excluded]
        for name in filenames:
            if name.startswith(TEMP_PREFIX) and name.endswith(".tmp"):
                continue
            path = Path(dirpath) / name
            try:
                if not path.is_file():
                    continue
                size = path.stat().st_size
            except OSError as exc:
                logger.warning("Не удалось получить сведения о файле %s: %s", path, exc)
                continue
            yield make_source_file(path, root, size)


def make_source_file(path: Path, root: Path | None = None, size_bytes: int | None = None) -> SourceFile:
    """Строит `SourceFile` по расширению файла."""
    fmt = ImageFormat.from_extension(path.suffix)
    if size_bytes is None:
        size_bytes = path.stat().st_size if path.exists() else 0
    return SourceFile(
        path=path,
        format=fmt,
        size_bytes=size_bytes,
        root=root,
        skip_reason=UNSUPPORTED_REASON if fmt is ImageFormat.UNSUPPORTED else None,
    )
