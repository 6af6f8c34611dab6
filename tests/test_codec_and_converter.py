from __future__ import annotations

import io

import numpy as np
import pytest
from PIL import Image

from conftest import save_image, solid, to_buffer
from rico.errors import DecodeError, UnsupportedTargetFormat
from rico.models.image_model import ImageFormat, PixelBuffer
from rico.services.convert_service import FormatConverter
from rico.services.image_service import ImageService


@pytest.fixture
def codec() -> ImageService:
    return ImageService()


def test_decode_png_to_rgba(tmp_path, codec, rng):
    arr = rng.integers(0, 256, (6, 9, 3), dtype=np.uint8)
    path = save_image(tmp_path / "a.png", arr)
    buf = codec.load(path)
    assert (buf.width, buf.height) == (9, 6)
    assert buf.samples.shape == (6, 9, 4)
    assert np.array_equal(buf.samples[:, :, :3], arr)
    assert (buf.alpha == 255).all()


def test_decode_garbage_raises_decode_error(codec):
    with pytest.raises(DecodeError):
        codec.decode(b"definitely not an image")


def test_decode_truncated_png_raises_decode_error(tmp_path, codec, rng):
    path = save_image(tmp_path / "a.png", rng.integers(0, 256, (32, 32, 3), dtype=np.uint8))
    data = path.read_bytes()
    with pytest.raises(DecodeError):
        codec.decode(data[: len(data) // 2])


def test_mismatched_extension_is_decoded_and_logged(tmp_path, codec, caplog):
    # BMP content behind a .png name
    path = save_image(tmp_path / "fake.png", solid(4, 3), fmt="BMP")
    with caplog.at_level("INFO", logger="rico.codec"):
        buf = codec.load(path)
    assert (buf.width, buf.height) == (4, 3)
    assert any("fake.png" in r.getMessage() and "bmp" in r.getMessage() for r in caplog.records)


def test_matching_extension_is_not_logged(tmp_path, codec, caplog):
    path = save_image(tmp_path / "real.jpg", solid(4, 3))
    with caplog.at_level("INFO", logger="rico.codec"):
        codec.load(path)
    assert not [r for r in caplog.records if r.name == "rico.codec"]


def test_read_missing_file(tmp_path, codec):
    with pytest.raises(FileNotFoundError):
        codec.read_bytes(tmp_path / "missing.png")


@pytest.mark.parametrize(
    "fmt,signature",
    [
        (ImageFormat.PNG, b"\x89PNG"),
        (ImageFormat.JPEG, b"\xff\xd8\xff"),
        (ImageFormat.BMP, b"BM"),
        (ImageFormat.WEBP, b"RIFF"),
    ],
)
def test_encode_each_supported_format(codec, fmt, signature):
    data = codec.encode(to_buffer(solid(4, 3)), fmt)
    assert data.startswith(signature)
    with Image.open(io.BytesIO(data)) as img:
        assert img.size == (4, 3)


def test_encode_unsupported_raises(codec):
    with pytest.raises(UnsupportedTargetFormat):
        codec.encode(to_buffer(solid(2, 2)), ImageFormat.UNSUPPORTED)


def test_png_keeps_alpha(codec):
    arr = np.zeros((2, 2, 4), dtype=np.uint8)
    arr[0, 0] = (10, 20, 30, 0)
    arr[1, 1] = (40, 50, 60, 128)
    data = codec.encode(PixelBuffer.from_array(arr), ImageFormat.PNG)
    assert np.array_equal(codec.decode(data).samples, arr)


def test_png_bmp_png_round_trip_is_exact(codec, rng):
    buf = to_buffer(rng.integers(0, 256, (13, 21, 3), dtype=np.uint8))
    converter = FormatConverter(codec)
    bmp = codec.decode(converter.convert(buf, "bmp"))
    png = codec.decode(converter.convert(bmp, "png"))
    assert (png.width, png.height) == (21, 13)
    assert np.array_equal(png.samples, buf.samples)


def test_webp_is_lossless_for_opaque_images(codec, rng):
    buf = to_buffer(rng.integers(0, 256, (8, 8, 3), dtype=np.uint8))
    out = codec.decode(codec.encode(buf, ImageFormat.WEBP))
    assert np.array_equal(out.samples, buf.samples)


def test_jpeg_keeps_dimensions(codec):
    buf = to_buffer(solid(31, 17))
    out = codec.decode(FormatConverter(codec).convert(buf, "jpeg"))
    assert (out.width, out.height) == (31, 17)
    assert (out.alpha == 255).all()


@pytest.mark.parametrize("name,expected", [
    ("png", ImageFormat.PNG),
    ("JPG", ImageFormat.JPEG),
    ("jpeg", ImageFormat.JPEG),
    ("bmp", ImageFormat.BMP),
    ("webp", ImageFormat.WEBP),
    (ImageFormat.BMP, ImageFormat.BMP),
])
def test_parse_target(name, expected):
    assert FormatConverter.parse_target(name) is expected


@pytest.mark.parametrize("name", ["gif", "tiff", "svg", "", ImageFormat.UNSUPPORTED])
def test_parse_target_rejects_unsupported(name):
    with pytest.raises(UnsupportedTargetFormat):
        FormatConverter.parse_target(name)


def test_convert_rejects_unsupported_target():
    with pytest.raises(UnsupportedTargetFormat):
        FormatConverter().convert(to_buffer(solid(2, 2)), "gif")
