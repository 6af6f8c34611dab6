from __future__ import annotations

from pathlib import Path
from typing import Tuple

import numpy as np
import pytest
from PIL import Image

from rico.models.image_model import PixelBuffer


def save_image(path: Path, arr: np.ndarray, fmt: str | None = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(arr.astype(np.uint8)).save(path, format=fmt)
    return path


def solid(width: int, height: int, rgb: Tuple[int, int, int] = (200, 40, 90)) -> np.ndarray:
    arr = np.zeros((height, width, 3), dtype=np.uint8)
    arr[:, :] = rgb
    return arr


def framed_subject(size: int = 24, inset: int = 6) -> np.ndarray:
    """White background with a dark square in the middle."""
    arr = np.full((size, size, 3), 255, dtype=np.uint8)
    arr[inset:size - inset, inset:size - inset] = (20, 30, 40)
    return arr


def to_buffer(rgb: np.ndarray) -> PixelBuffer:
    alpha = np.full(rgb.shape[:2] + (1,), 255, dtype=np.uint8)
    return PixelBuffer.from_array(np.concatenate([rgb, alpha], axis=2))


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(1234)


@pytest.fixture
def image_dir(tmp_path: Path, rng: np.random.Generator) -> Path:
    """Source tree: 3 PNG, 1 JPEG, 1 BMP in a subfolder, 1 SVG, 1 text file."""
    src = tmp_path / "src"
    for i in range(3):
        save_image(src / f"img{i}.png", rng.integers(0, 256, (8, 10, 3), dtype=np.uint8))
    save_image(src / "photo.jpg", solid(12, 9))
    save_image(src / "nested" / "deep.bmp", solid(5, 7, (1, 2, 3)))
    (src / "vector.svg").write_text("<svg xmlns='http://www.w3.org/2000/svg'/>", encoding="utf-8")
    (src / "notes.txt").write_text("not an image", encoding="utf-8")
    return src
