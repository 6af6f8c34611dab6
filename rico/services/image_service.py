"""Кодек изображений: байты файла <-> `PixelBuffer`.

Принципы:
- SRP: класс отвечает только за чтение, декодирование и кодирование.
- Всё остальное в конвейере видит лишь `PixelBuffer`; Pillow спрятан здесь.
"""
from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import numpy as np
from PIL import Image, UnidentifiedImageError

from rico.errors import DecodeError, EncodeError, UnsupportedTargetFormat
from rico.models.image_model import SUPPORTED_FORMATS, ImageFormat, PixelBuffer
from rico.utils.log import get_logger

logger = get_logger("codec")

JPEG_QUALITY = 90

# Formats without an alpha channel in their common readers.
_OPAQUE_FORMATS = (ImageFormat.JPEG, ImageFormat.BMP)


class ImageService:
    def read_bytes(self, file_path: str | Path) -> bytes:
        """Читает файл целиком.

        Raises:
            FileNotFoundError: если путь не существует или не указывает на файл.
        """
        path = Path(file_path)
        if not path.is_file():
            raise FileNotFoundError(f"Файл не найден: {path}")
        return path.read_bytes()

    def decode(
        self,
        data: bytes,
        expected: Optional[ImageFormat] = None,
        origin: Optional[Path] = None,
    ) -> PixelBuffer:
        """Декодирует байты в RGBA-буфер.

        Если задан `expected` (формат по расширению), а Pillow распознал другой
        контейнер, это только логируется (с путём `origin`): декодируется фактическое
        содержимое.

        Raises:
            DecodeError: если байты не распознаны как изображение или повреждены.
        """
        try:
            with Image.open(io.BytesIO(data)) as pil_image:
                pil_image.load()
                detected = ImageFormat.from_extension(pil_image.format or "")
                rgba = pil_image.convert("RGBA")
        except UnidentifiedImageError as exc:
            raise DecodeError("Данные не являются изображением") from exc
        except (OSError, SyntaxError, ValueError) as exc:
            # truncated or malformed streams surface as OSError/SyntaxError in Pillow
            raise DecodeError(f"Повреждённое изображение: {exc}") from exc

        if expected is not None and detected not in (expected, ImageFormat.UNSUPPORTED):
            logger.info(
                "%s: расширение говорит %s, содержимое %s",
                origin or "<bytes>", expected.extension, detected.extension,
            )

        arr = np.asarray(rgba, dtype=np.uint8)
        return PixelBuffer.from_array(arr.copy())

    def load(self, file_path: str | Path) -> PixelBuffer:
        """Читает и декодирует файл."""
        path = Path(file_path)
        return self.decode(
            self.read_bytes(path), expected=ImageFormat.from_extension(path.suffix), origin=path
        )

    def encode(self, buffer: PixelBuffer, image_format: ImageFormat) -> bytes:
        """Кодирует буфер в байты заданного формата без изменения содержимого.

        JPEG и BMP не несут альфа-канал: пиксели сохраняются как RGB.

        Raises:
            UnsupportedTargetFormat: если формат не из списка поддерживаемых.
            EncodeError: если Pillow не смог закодировать изображение.
        """
        if image_format not in SUPPORTED_FORMATS:
            raise UnsupportedTargetFormat(f"Неподдерживаемый формат вывода: {image_format.value}")

        if image_format in _OPAQUE_FORMATS and logger.isEnabledFor(logging.DEBUG):
            if bool((buffer.alpha < 255).any()):
                logger.debug("Альфа-канал отброшен при кодировании в %s", image_format.pil_format)

        out = io.BytesIO()
        try:
            # (H, W, 4) uint8 is read by Pillow as RGBA
            pil_image = Image.fromarray(buffer.samples)
            if image_format in _OPAQUE_FORMATS:
                pil_image = pil_image.convert("RGB")
            pil_image.save(out, format=image_format.pil_format, **self._save_options(image_format))
        except (OSError, ValueError, KeyError) as exc:
            raise EncodeError(f"Не удалось закодировать в {image_format.pil_format}: {exc}") from exc
        return out.getvalue()

    def _save_options(self, image_format: ImageFormat) -> Dict[str, Any]:
        if image_format is ImageFormat.JPEG:
            return {"quality": JPEG_QUALITY}
        if image_format is ImageFormat.WEBP:
            return {"lossless": True}
        return {}

