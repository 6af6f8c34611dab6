"""Сегментация по границам: Собель + заливка от края изображения.

Алгоритм:
1. Яркость пикселя по весам BT.601, округлённая до целого.
2. Градиент Собеля с репликацией краёв; модуль делится на 4, чтобы
   ступенька яркости Δ давала модуль Δ (шкала 0..255).
3. Граница: модуль > порога.
4. Фон: 4-связные компоненты не-граничных пикселей, касающиеся края.
5. Фоновым пикселям ставится альфа 0 (или цвет замены).

Ограничение: объект, касающийся края изображения, может быть недосегментирован,
если его внутренность соединена с краем без пересечения границы.
"""
from __future__ import annotations

from typing import Optional, Tuple

import numpy as np
from scipy import ndimage

from rico.models.image_model import EdgeMask, PixelBuffer

DEFAULT_EDGE_THRESHOLD = 30

_LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114], dtype=np.float64)
# 4-connectivity
_FOUR_CONNECTED = np.array([[0, 1, 0], [1, 1, 1], [0, 1, 0]], dtype=bool)


class ProcessService:
    # ---------- Вспомогательные функции ----------
    def luminance(self, buffer: PixelBuffer) -> np.ndarray:
        """
        Возвращает numpy-массив float32 целых значений [0, 255] (яркость).
        """
        rgb = buffer.samples[:, :, :3].astype(np.float64)
        return np.rint(rgb @ _LUMA_WEIGHTS).astype(np.float32)

    def sobel_magnitude(self, gray: np.ndarray) -> np.ndarray:
        """
        Модуль градиента Собеля в единицах яркости.
        """
        if gray.size == 0:
            return np.zeros_like(gray, dtype=np.float32)
        # Паддинг репликацией краёв: чтения за границу не происходит
        p = np.pad(gray, ((1, 1), (1, 1)), mode="edge")

        # Классические Собель-фильтры, векторизованная свёртка через сдвиги
        gx = (
            (p[0:-2, 2:] + 2 * p[1:-1, 2:] + p[2:, 2:])
            - (p[0:-2, 0:-2] + 2 * p[1:-1, 0:-2] + p[2:, 0:-2])
        )
        gy = (
            (p[2:, 0:-2] + 2 * p[2:, 1:-1] + p[2:, 2:])
            - (p[0:-2, 0:-2] + 2 * p[0:-2, 1:-1] + p[0:-2, 2:])
        )
        return (np.hypot(gx, gy) / 4.0).astype(np.float32)

    # ---------- Сегментация ----------
    def edge_mask(self, buffer: PixelBuffer, edge_threshold: int = DEFAULT_EDGE_THRESHOLD) -> EdgeMask:
        """
        Граница там, где модуль градиента строго больше порога.
        """
        self.check_threshold(edge_threshold)
        mag = self.sobel_magnitude(self.luminance(buffer))
        return EdgeMask(
            width=buffer.width,
            height=buffer.height,
            edges=mag > edge_threshold,
            magnitude=mag,
        )

    def background_mask(self, mask: EdgeMask) -> np.ndarray:
        """
        Фон = компоненты не-граничных пикселей, достижимые от края без пересечения границы.
        """
        passable = ~mask.edges
        if passable.size == 0:
            return np.zeros_like(passable, dtype=bool)

        labels, count = ndimage.label(passable, structure=_FOUR_CONNECTED)
        if count == 0:
            return np.zeros_like(passable, dtype=bool)

        border = np.concatenate((labels[0, :], labels[-1, :], labels[:, 0], labels[:, -1]))
        border_labels = np.unique(border[border > 0])
        return np.isin(labels, border_labels)

    def remove_background(
        self,
        buffer: PixelBuffer,
        edge_threshold: int = DEFAULT_EDGE_THRESHOLD,
        replacement: Optional[Tuple[int, int, int, int]] = None,
    ) -> PixelBuffer:
        """
        Возвращает новый буфер: фон прозрачный (альфа 0, RGB сохраняется)
        либо залит цветом `replacement`; передний план копируется как есть.
        """
        if buffer.width == 0 or buffer.height == 0:
            self.check_threshold(edge_threshold)
            return buffer.copy()

        background = self.background_mask(self.edge_mask(buffer, edge_threshold))
        out = buffer.samples.copy()
        if replacement is None:
            out[background, 3] = 0
        else:
            out[background] = np.asarray(replacement, dtype=np.uint8)
        return PixelBuffer.from_array(out)

    def foreground_count(self, buffer: PixelBuffer, edge_threshold: int = DEFAULT_EDGE_THRESHOLD) -> int:
        """Число пикселей, оставшихся передним планом при данном пороге."""
        background = self.background_mask(self.edge_mask(buffer, edge_threshold))
        return int(background.size - np.count_nonzero(background))

    def check_threshold(self, edge_threshold: int) -> None:
        if isinstance(edge_threshold, bool) or not isinstance(edge_threshold, (int, np.integer)):
            raise ValueError(f"Порог должен быть целым числом, получено {edge_threshold!r}")
        if not 0 <= edge_threshold <= 255:
            raise ValueError(f"Порог вне диапазона 0..255: {edge_threshold}")
