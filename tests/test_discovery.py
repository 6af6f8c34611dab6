from __future__ import annotations

from pathlib import Path

import pytest

from rico.errors import DiscoveryError
from rico.models.image_model import ImageFormat
from rico.services.discovery_service import UNSUPPORTED_REASON, discover


def _by_name(sources):
    return {s.path.name: s for s in sources}


def test_missing_directory_fails_immediately(tmp_path):
    with pytest.raises(DiscoveryError):
        discover(tmp_path / "nope")


def test_file_instead_of_directory(tmp_path):
    f = tmp_path / "a.png"
    f.write_bytes(b"x")
    with pytest.raises(DiscoveryError):
        discover(f)


def test_recursive_discovery_marks_unsupported(image_dir):
    found = _by_name(discover(image_dir))
    assert set(found) == {"img0.png", "img1.png", "img2.png", "photo.jpg", "deep.bmp", "vector.svg", "notes.txt"}

    assert found["photo.jpg"].format is ImageFormat.JPEG
    assert found["deep.bmp"].relative_path == Path("nested/deep.bmp")
    assert found["img0.png"].size_bytes == (image_dir / "img0.png").stat().st_size
    assert not found["img0.png"].is_skipped

    for name in ("vector.svg", "notes.txt"):
        assert found[name].format is ImageFormat.UNSUPPORTED
        assert found[name].skip_reason == UNSUPPORTED_REASON


def test_non_recursive(image_dir):
    found = _by_name(discover(image_dir, recursive=False))
    assert "deep.bmp" not in found
    assert "img0.png" in found


def test_extensions_are_case_insensitive(tmp_path):
    (tmp_path / "UPPER.JPEG").write_bytes(b"x")
    (tmp_path / "noext").write_bytes(b"x")
    found = _by_name(discover(tmp_path))
    assert found["UPPER.JPEG"].format is ImageFormat.JPEG
    assert found["noext"].is_skipped


def test_excluded_subtree_and_temp_files_are_ignored(tmp_path):
    (tmp_path / "a.png").write_bytes(b"x")
    (tmp_path / ".rico-a.png-123.tmp").write_bytes(b"x")
    out = tmp_path / "out"
    out.mkdir()
    (out / "a.bmp").write_bytes(b"x")
    found = _by_name(discover(tmp_path, exclude=out))
    assert set(found) == {"a.png"}


def test_discovery_is_lazy(tmp_path):
    (tmp_path / "a.png").write_bytes(b"x")
    it = discover(tmp_path)
    assert iter(it) is it
    assert next(it).path.name == "a.png"
