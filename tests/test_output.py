from __future__ import annotations

import csv
import os
from pathlib import Path

import pytest

from rico.models.batch_model import BatchReport, Outcome
from rico.services.output_service import OutputWriter, write_report_csv


def test_creates_missing_parents(tmp_path):
    dest = tmp_path / "a" / "b" / "c" / "out.png"
    written = OutputWriter().write(b"data", dest)
    assert written == dest
    assert dest.read_bytes() == b"data"


def test_overwrites_existing(tmp_path):
    dest = tmp_path / "out.png"
    dest.write_bytes(b"old")
    OutputWriter(fsync=False).write(b"new", dest)
    assert dest.read_bytes() == b"new"


def test_no_temp_files_left(tmp_path):
    OutputWriter().write(b"data", tmp_path / "out.png")
    assert [p.name for p in tmp_path.iterdir()] == ["out.png"]


def test_failed_replace_removes_temp_and_keeps_old(tmp_path, monkeypatch):
    dest = tmp_path / "out.png"
    dest.write_bytes(b"old")

    def boom(src, dst):
        raise PermissionError("denied")

    monkeypatch.setattr(os, "replace", boom)
    with pytest.raises(PermissionError):
        OutputWriter().write(b"new", dest)
    assert dest.read_bytes() == b"old"
    assert [p.name for p in tmp_path.iterdir()] == ["out.png"]


def test_report_csv_sorted_by_path(tmp_path):
    report = BatchReport()
    report.add(Outcome.failed(Path("b.png"), "DecodeError: bad"))
    report.add(Outcome.converted(Path("a.png"), Path("out/a.bmp")))
    report.add(Outcome.skipped(Path("c.svg"), "unsupported format"))
    report.finalize()

    path = write_report_csv(tmp_path / "reports" / "r.csv", report)
    with path.open(encoding="utf-8", newline="") as f:
        rows = list(csv.reader(f))
    assert rows[0] == ["path", "outcome", "output_path", "reason", "error"]
    assert [r[0] for r in rows[1:]] == ["a.png", "b.png", "c.svg"]
    assert rows[1][1:3] == ["converted", str(Path("out/a.bmp"))]
    assert rows[2][1] == "failed" and rows[2][4] == "DecodeError: bad"
    assert rows[3][1:4] == ["skipped", "", "unsupported format"]
