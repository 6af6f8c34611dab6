"""Модели данных для изображений.

Принципы:
- SRP: только структура данных, без логики обработки.
- Чистый код: неизменяемость (`frozen=True`) для предсказуемости.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

import numpy as np


class ImageFormat(Enum):
    """Форматы, с которыми работает конвейер."""
    PNG = "png"
    JPEG = "jpg"
    BMP = "bmp"
    WEBP = "webp"
    UNSUPPORTED = "unsupported"

    @property
    def extension(self) -> str:
        """Каноническое расширение без точки."""
        return self.value

    @property
    def pil_format(self) -> str:
        """Имя формата для `PIL.Image.save`."""
        if self is ImageFormat.UNSUPPORTED:
            raise ValueError("UNSUPPORTED has no Pillow format")
        return {"jpg": "JPEG"}.get(self.value, self.value.upper())

    @classmethod
    def from_extension(cls, ext: str) -> "ImageFormat":
        """Определяет формат по расширению (с точкой или без, регистр не важен)."""
        return _EXT_FORMAT.get(ext.lower().lstrip("."), cls.UNSUPPORTED)


_EXT_FORMAT = {
    "png": ImageFormat.PNG,
    "jpg": ImageFormat.JPEG,
    "jpeg": ImageFormat.JPEG,
    "bmp": ImageFormat.BMP,
    "webp": ImageFormat.WEBP,
}

SUPPORTED_FORMATS = (ImageFormat.PNG, ImageFormat.JPEG, ImageFormat.BMP, ImageFormat.WEBP)


@dataclass(frozen=True)
class SourceFile:
    """Неизменяемое описание найденного файла.

    Fields:
        path: Путь к исходному файлу.
        format: Формат, определённый по расширению.
        size_bytes: Размер файла.
        root: Корень обхода; по нему строится относительный путь вывода.
        skip_reason: Причина пропуска, если файл отбракован ещё при обходе.
    """
    path: Path
    format: ImageFormat
    size_bytes: int
    root: Optional[Path] = None
    skip_reason: Optional[str] = None

    @property
    def is_skipped(self) -> bool:
        return self.skip_reason is not None

    @property
    def relative_path(self) -> Path:
        """Путь относительно корня обхода (или просто имя файла)."""
        if self.root is None:
            return Path(self.path.name)
        try:
            return self.path.relative_to(self.root)
        except ValueError:
            return Path(self.path.name)


@dataclass(frozen=True, eq=False)
class PixelBuffer:
    """Декодированное изображение: RGBA, построчно.

    Fields:
        width: Ширина, px.
        height: Высота, px.
        samples: `uint8`-массив формы (height, width, 4).
    """
    width: int
    height: int
    samples: np.ndarray

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Отрицательный размер буфера: {self.width}x{self.height}")
        if self.samples.dtype != np.uint8:
            raise ValueError(f"Ожидался uint8, получен {self.samples.dtype}")
        if self.samples.size != self.width * self.height * 4:
            raise ValueError(
                f"Длина выборок {self.samples.size} != {self.width}*{self.height}*4"
            )
        if self.samples.shape != (self.height, self.width, 4):
            object.__setattr__(self, "samples", self.samples.reshape(self.height, self.width, 4))

    @classmethod
    def from_array(cls, arr: np.ndarray) -> "PixelBuffer":
        """Создаёт буфер из массива (H, W, 4)."""
        if arr.ndim != 3 or arr.shape[2] != 4:
            raise ValueError(f"Ожидался массив (H, W, 4), получен {arr.shape}")
        height, width = arr.shape[:2]
        return cls(width=width, height=height, samples=np.ascontiguousarray(arr))

    @property
    def alpha(self) -> np.ndarray:
        return self.samples[:, :, 3]

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(self.width, self.height, self.samples.copy())


@dataclass(frozen=True, eq=False)
class EdgeMask:
    """Карта границ для одного вызова сегментации.

    Fields:
        width: Ширина, px.
        height: Высота, px.
        edges: Булева маска (height, width); True = граница.
        magnitude: Модуль градиента в единицах яркости 0..255.
    """
    width: int
    height: int
    edges: np.ndarray
    magnitude: np.ndarray

    @property
    def edge_count(self) -> int:
        return int(np.count_nonzero(self.edges))
