"""Перекодирование `PixelBuffer` в другой контейнерный формат."""
from __future__ import annotations

from typing import Optional

from rico.errors import UnsupportedTargetFormat
from rico.models.image_model import SUPPORTED_FORMATS, ImageFormat, PixelBuffer
from rico.services.image_service import ImageService


class FormatConverter:
    """Без ресемплинга и смены цвета; JPEG пишется с фиксированным качеством."""

    def __init__(self, image_service: Optional[ImageService] = None) -> None:
        self._image_service = image_service or ImageService()

    @staticmethod
    def parse_target(name: str | ImageFormat) -> ImageFormat:
        """Преобразует имя формата из CLI (`png`, `jpg`, `jpeg`, `bmp`, `webp`) в `ImageFormat`.

        Raises:
            UnsupportedTargetFormat: для любого другого имени.
        """
        if isinstance(name, ImageFormat):
            fmt = name
        else:
            fmt = ImageFormat.from_extension(str(name).strip())
        if fmt not in SUPPORTED_FORMATS:
            raise UnsupportedTargetFormat(f"Неподдерживаемый формат вывода: {name}")
        return fmt

    def convert(self, buffer: PixelBuffer, target: str | ImageFormat) -> bytes:
        return self._image_service.encode(buffer, self.parse_target(target))
