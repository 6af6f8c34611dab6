"""Параллельный планировщик: по одному исходу на каждый найденный файл.

Принципы:
- Ошибка внутри задачи перехватывается на границе задачи и становится
  `Outcome.failed`; соседние задачи и сам планировщик не затрагиваются.
- В полёте не больше `parallelism * in_flight_multiplier` задач: каждая держит
  в памяти один декодированный буфер.
- Отчёт финализируется только после завершения всех задач.
"""
from __future__ import annotations

import os
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Callable, Dict, Iterable, Optional

from tqdm import tqdm

from rico.models.batch_model import BatchReport, Outcome, OutcomeKind
from rico.models.image_model import SourceFile
from rico.utils.log import get_logger

logger = get_logger("scheduler")

TransformFn = Callable[[SourceFile], Outcome]
OutcomeCallback = Callable[[Outcome], None]


def default_parallelism() -> int:
    return max(1, os.cpu_count() or 1)


def run_task(source: SourceFile, transform: TransformFn) -> Outcome:
    """Граница задачи: любое исключение превращается в `Outcome.failed`."""
    try:
        outcome = transform(source)
    except Exception as exc:
        return Outcome.failed(source.path, exc)
    if not isinstance(outcome, Outcome):
        return Outcome.failed(source.path, f"transform returned {type(outcome).__name__}, not Outcome")
    return outcome


class Scheduler:
    def __init__(
        self,
        parallelism: Optional[int] = None,
        in_flight_multiplier: int = 2,
        show_progress: bool = False,
    ) -> None:
        if parallelism is None:
            parallelism = default_parallelism()
        if parallelism < 1:
            raise ValueError(f"parallelism должен быть >= 1, получено {parallelism}")
        if in_flight_multiplier < 1:
            raise ValueError(f"in_flight_multiplier должен быть >= 1, получено {in_flight_multiplier}")
        self.parallelism = parallelism
        self.in_flight_multiplier = in_flight_multiplier
        self.show_progress = show_progress

    @property
    def max_in_flight(self) -> int:
        return self.parallelism * self.in_flight_multiplier

    def run(
        self,
        sources: Iterable[SourceFile],
        transform: TransformFn,
        on_outcome: Optional[OutcomeCallback] = None,
    ) -> BatchReport:
        """Выполняет `transform` для каждого файла и возвращает финализированный отчёт.

        Args:
            sources: Файлы-кандидаты; итерируются лениво.
            transform: Функция `(SourceFile) -> Outcome`, вызывается в потоках пула.
            on_outcome: Вызывается в потоке планировщика после записи каждого исхода.
                Исключение из него логируется и не прерывает запуск.
        """
        report = BatchReport()
        in_flight: Dict[Future, SourceFile] = {}

        def record(outcome: Outcome) -> None:
            report.add(outcome)
            self._log_outcome(outcome)
            progress.update(1)
            if on_outcome is not None:
                try:
                    on_outcome(outcome)
                except Exception:
                    # the outcome is already recorded; the run goes on
                    logger.exception("on_outcome failed for %s", outcome.source_path)

        def drain() -> None:
            done, _ = wait(list(in_flight), return_when=FIRST_COMPLETED)
            for fut in done:
                source = in_flight.pop(fut)
                try:
                    outcome = fut.result()
                except Exception as exc:
                    outcome = Outcome.failed(source.path, exc)
                record(outcome)

        with tqdm(
            desc="Processing", unit="img", disable=not self.show_progress, leave=False
        ) as progress, ThreadPoolExecutor(
            max_workers=self.parallelism, thread_name_prefix="rico-worker"
        ) as executor:
            for source in sources:
                if source.is_skipped:
                    record(Outcome.skipped(source.path, source.skip_reason or ""))
                    continue
                while len(in_flight) >= self.max_in_flight:
                    drain()
                in_flight[executor.submit(run_task, source, transform)] = source
            while in_flight:
                drain()

        return report.finalize()

    def _log_outcome(self, outcome: Outcome) -> None:
        if outcome.kind is OutcomeKind.CONVERTED:
            logger.debug("OK: %s -> %s", outcome.source_path, outcome.output_path)
        elif outcome.kind is OutcomeKind.SKIPPED:
            logger.info("Пропуск %s: %s", outcome.source_path, outcome.reason)
        else:
            logger.warning("Ошибка %s: %s", outcome.source_path, outcome.error)
