"""Стратегии обработки одного файла: конвертация и удаление фона.

Конвейер задачи: чтение -> декодирование -> преобразование -> кодирование -> запись.
Стратегия выбирается один раз слоем CLI и передаётся планировщику как функция
`(SourceFile) -> Outcome`. Исключения здесь не перехватываются: их ловит
граница задачи в планировщике.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from rico.models.batch_model import (
    ConvertMode,
    Outcome,
    RemoveBackgroundMode,
    Rgba,
    TransformMode,
    TransformRequest,
)
from rico.models.image_model import ImageFormat, PixelBuffer, SourceFile
from rico.services.convert_service import FormatConverter
from rico.services.image_service import ImageService
from rico.services.output_service import OutputWriter
from rico.services.process_service import ProcessService

ALREADY_TARGET_REASON = "already in target format"
OUTPUT_EXISTS_REASON = "output already exists"


class Transform(ABC):
    """Общий каркас задачи; наследники задают режим, формат вывода и само преобразование."""

    def __init__(
        self,
        output_dir: str | Path,
        image_service: Optional[ImageService] = None,
        writer: Optional[OutputWriter] = None,
    ) -> None:
        self.output_dir = Path(output_dir)
        self._image_service = image_service or ImageService()
        self._writer = writer or OutputWriter()

    @property
    @abstractmethod
    def mode(self) -> TransformMode:
        ...

    @property
    @abstractmethod
    def output_format(self) -> ImageFormat:
        ...

    @abstractmethod
    def apply(self, buffer: PixelBuffer) -> bytes:
        """Преобразует буфер и возвращает закодированные байты."""

    def output_path_for(self, source: SourceFile) -> Path:
        """Повторяет относительный путь исходника внутри `output_dir` с новым расширением."""
        return (self.output_dir / source.relative_path).with_suffix("." + self.output_format.extension)

    def make_request(self, source: SourceFile) -> TransformRequest:
        return TransformRequest(source=source, mode=self.mode, output_path=self.output_path_for(source))

    def precheck(self, request: TransformRequest) -> Optional[Outcome]:
        """Возвращает исход-пропуск, если файл обрабатывать не нужно."""
        if request.source.is_skipped:
            return Outcome.skipped(request.source.path, request.source.skip_reason or "")
        return None

    def execute(self, request: TransformRequest) -> Outcome:
        skipped = self.precheck(request)
        if skipped is not None:
            return skipped

        data = self._image_service.read_bytes(request.source.path)
        buffer = self._image_service.decode(
            data, expected=request.source.format, origin=request.source.path
        )
        encoded = self.apply(buffer)
        written = self._writer.write(encoded, request.output_path)
        return Outcome.converted(request.source.path, written)

    def __call__(self, source: SourceFile) -> Outcome:
        return self.execute(self.make_request(source))


class ConvertTransform(Transform):
    def __init__(
        self,
        output_dir: str | Path,
        target_format: str | ImageFormat,
        skip_existing: bool = False,
        image_service: Optional[ImageService] = None,
        writer: Optional[OutputWriter] = None,
    ) -> None:
        super().__init__(output_dir, image_service=image_service, writer=writer)
        self._converter = FormatConverter(self._image_service)
        self.target_format = FormatConverter.parse_target(target_format)
        self.skip_existing = skip_existing

    @property
    def mode(self) -> ConvertMode:
        return ConvertMode(self.target_format)

    @property
    def output_format(self) -> ImageFormat:
        return self.target_format

    def precheck(self, request: TransformRequest) -> Optional[Outcome]:
        skipped = super().precheck(request)
        if skipped is not None:
            return skipped
        if request.source.format is self.target_format:
            return Outcome.skipped(request.source.path, ALREADY_TARGET_REASON)
        if self.skip_existing and request.output_path.exists():
            return Outcome.skipped(request.source.path, OUTPUT_EXISTS_REASON)
        return None

    def apply(self, buffer: PixelBuffer) -> bytes:
        return self._converter.convert(buffer, self.target_format)


class BackgroundRemovalTransform(Transform):
    """Удаление фона; результат всегда PNG, чтобы сохранить альфа-канал."""

    def __init__(
        self,
        output_dir: str | Path,
        edge_threshold: int = 30,
        replacement: Optional[Rgba] = None,
        image_service: Optional[ImageService] = None,
        writer: Optional[OutputWriter] = None,
        process_service: Optional[ProcessService] = None,
    ) -> None:
        super().__init__(output_dir, image_service=image_service, writer=writer)
        self._process_service = process_service or ProcessService()
        # raises ValueError before any file is scheduled
        self._process_service.check_threshold(edge_threshold)
        self.edge_threshold = edge_threshold
        self.replacement = replacement

    @property
    def mode(self) -> RemoveBackgroundMode:
        return RemoveBackgroundMode(self.edge_threshold, self.replacement)

    @property
    def output_format(self) -> ImageFormat:
        return ImageFormat.PNG

    def apply(self, buffer: PixelBuffer) -> bytes:
        result = self._process_service.remove_background(
            buffer, edge_threshold=self.edge_threshold, replacement=self.replacement
        )
        return self._image_service.encode(result, ImageFormat.PNG)
