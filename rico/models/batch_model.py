"""Модели пакетной обработки: запросы, исходы и сводный отчёт.

Принципы:
- Запрос и исход неизменяемы, один исход на каждый найденный файл.
- `BatchReport` единственный разделяемый изменяемый объект; все изменения
  проходят через замок.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple, Union

from rico.models.image_model import ImageFormat, SourceFile

Rgba = Tuple[int, int, int, int]


@dataclass(frozen=True)
class ConvertMode:
    target_format: ImageFormat


@dataclass(frozen=True)
class RemoveBackgroundMode:
    """Удаление фона; `replacement=None` означает прозрачность."""
    edge_threshold: int = 30
    replacement: Optional[Rgba] = None


TransformMode = Union[ConvertMode, RemoveBackgroundMode]


@dataclass(frozen=True)
class TransformRequest:
    source: SourceFile
    mode: TransformMode
    output_path: Path


class OutcomeKind(Enum):
    CONVERTED = "converted"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class Outcome:
    """Итог обработки одного файла."""
    kind: OutcomeKind
    source_path: Path
    output_path: Optional[Path] = None
    reason: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def converted(cls, source_path: Path, output_path: Path) -> "Outcome":
        return cls(OutcomeKind.CONVERTED, source_path, output_path=output_path)

    @classmethod
    def skipped(cls, source_path: Path, reason: str) -> "Outcome":
        return cls(OutcomeKind.SKIPPED, source_path, reason=reason)

    @classmethod
    def failed(cls, source_path: Path, error: Union[str, BaseException]) -> "Outcome":
        if isinstance(error, BaseException):
            error = f"{type(error).__name__}: {error}"
        return cls(OutcomeKind.FAILED, source_path, error=error)


@dataclass(frozen=True)
class Failure:
    path: Path
    error: str


@dataclass
class BatchReport:
    """Потокобезопасный накопитель исходов.

    Пока отчёт не финализирован, `add` можно вызывать из любых потоков.
    После `finalize` отчёт только читается.
    """
    converted: int = 0
    skipped: int = 0
    failed: int = 0
    failures: List[Failure] = field(default_factory=list)
    outcomes: List[Outcome] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)
    _finalized: bool = field(default=False, repr=False, compare=False)

    def add(self, outcome: Outcome) -> None:
        with self._lock:
            if self._finalized:
                raise RuntimeError("BatchReport уже финализирован")
            if outcome.kind is OutcomeKind.CONVERTED:
                self.converted += 1
            elif outcome.kind is OutcomeKind.SKIPPED:
                self.skipped += 1
            else:
                self.failed += 1
                self.failures.append(Failure(outcome.source_path, outcome.error or ""))
            self.outcomes.append(outcome)

    def finalize(self) -> "BatchReport":
        with self._lock:
            self._finalized = True
        return self

    @property
    def finalized(self) -> bool:
        return self._finalized

    @property
    def total(self) -> int:
        return self.converted + self.skipped + self.failed

    def counts(self) -> Tuple[int, int, int]:
        """(converted, skipped, failed)."""
        return self.converted, self.skipped, self.failed

    # presentation only; scheduling never depends on order
    def sorted_outcomes(self) -> List[Outcome]:
        return sorted(self.outcomes, key=lambda o: str(o.source_path))

    def sorted_failures(self) -> List[Failure]:
        return sorted(self.failures, key=lambda f: str(f.path))
