from __future__ import annotations

import json
import re
from pathlib import Path

from levscore.logging.error_log import ErrorLogBuffer
from levscore.models.import_error_record import ImportErrorRecord, UploadRecord


def test_error_record_creation_and_json_line():
    rec = ImportErrorRecord.create(file="lev.xlsx", error_type="MISSING_COLUMNS", message="missing columns: Leverantör")
    data = json.loads(rec.to_json_line())
    assert data["file"] == "lev.xlsx"
    assert data["error_type"] == "MISSING_COLUMNS"
    # non-ASCII kept verbatim in the log
    assert "Leverantör" in rec.to_json_line()
    assert data["timestamp"].endswith("Z")
    assert set(data.keys()) == {"timestamp", "file", "error_type", "message"}


def test_upload_record_defaults():
    rec = UploadRecord.create("org-1", "anna@example.com", "lev.xlsx", 12)
    data = json.loads(rec.to_json_line())
    assert data["status"] == "completed"
    assert data["record_count"] == 12


def test_error_log_buffer_flush(temp_workdir: Path):
    buf = ErrorLogBuffer()
    buf.append(ImportErrorRecord.create("f1.xlsx", "EMPTY_FILE", "spreadsheet is empty"))
    buf.append(ImportErrorRecord.create("f2.csv", "FILE_REJECTED", "invalid CSV file"))
    path = buf.flush()
    assert path.exists()
    assert re.fullmatch(r"errors-\d{8}-\d{6}\.log", path.name)
    lines = path.read_text(encoding="utf-8").strip().splitlines()
    assert len(lines) == 2
    for raw in lines:
        assert set(json.loads(raw).keys()) == {"timestamp", "file", "error_type", "message"}
    assert len(buf) == 0


def test_error_log_buffer_empty_flush_writes_nothing(temp_workdir: Path):
    buf = ErrorLogBuffer(temp_workdir / "other_logs")
    assert buf.flush() is None
    assert not (temp_workdir / "other_logs").exists()


def test_error_log_buffer_multiple_flushes(temp_workdir: Path):
    buf = ErrorLogBuffer()
    buf.append(ImportErrorRecord.create("f.xlsx", "EMPTY_FILE", "empty"))
    path = buf.flush()
    size1 = path.stat().st_size
    buf.append(ImportErrorRecord.create("f.xlsx", "EMPTY_FILE", "empty again"))
    path2 = buf.flush()
    assert path == path2
    assert path2.stat().st_size > size1
