from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path

import pytest

from levscore.config.loader import build_config, load_config
from levscore.excel.file_checks import XLSX_MAGIC
from levscore.logging.error_log import ErrorLogBuffer
from levscore.models.import_result import FileStatus
from levscore.models.supplier_record import HeaderValidationResult
from levscore.services.importer import (
    FileRejectedError,
    ImportFailure,
    MissingColumnsError,
    ProcessingError,
    import_buffer,
    import_files,
    missing_columns_message,
    scan_upload_files,
)


class DummyCursor:
    def __init__(self) -> None:
        self.statements: list[str] = []
        self.rowcount = 0

    def execute(self, sql, params=None):
        self.statements.append(sql.split()[0] if sql.startswith("INSERT") else sql)


@pytest.fixture()
def fake_store(monkeypatch):
    import levscore.db.supplier_store as store

    def fake_execute_values(cursor, sql, rows, template=None, page_size=100, fetch=False):
        cursor.statements.append("UPSERT")
        return [(True,) for _ in rows]

    monkeypatch.setattr(store, "execute_values", fake_execute_values)


def test_scan_upload_files(temp_workdir: Path):
    data = temp_workdir / "data"
    for name in ("b.xlsx", "a.csv", "c.XLS", "readme.txt"):
        (data / name).write_bytes(b"x")
    (data / "sub.xlsx").mkdir()
    assert [p.name for p in scan_upload_files(data)] == ["a.csv", "b.xlsx", "c.XLS"]


def test_scan_upload_files_missing_directory(temp_workdir: Path):
    with pytest.raises(ProcessingError, match="directory not found"):
        scan_upload_files(temp_workdir / "missing")
    with pytest.raises(ProcessingError, match="not a directory"):
        (temp_workdir / "file.txt").write_text("x")
        scan_upload_files(temp_workdir / "file.txt")


def test_missing_columns_message_truncates_found():
    validation = HeaderValidationResult(
        valid=False, missing_columns=["Leverantörsnummer"], found_columns=list("abcdefg")
    )
    assert missing_columns_message(validation) == "missing columns: Leverantörsnummer. found: a, b, c, d, e..."


def test_import_buffer_mock_mode(write_config: Path, xlsx_bytes, scored_rows):
    cfg = load_config(write_config)
    result = import_buffer(xlsx_bytes(scored_rows), "../lev.xlsx", cfg)
    assert result.status is FileStatus.SUCCESS
    assert result.record_count == 2
    assert (result.created, result.updated, result.deleted) == (2, 0, 0)
    assert result.file_name == "__lev.xlsx"


def test_import_buffer_mock_mode_counts_duplicates_once(write_config: Path, xlsx_bytes):
    cfg = load_config(write_config)
    rows = [["LevNr", "Namn"], ["1", "Acme"], ["2", "Beta"], ["1", "Acme AB"]]
    result = import_buffer(xlsx_bytes(rows), "dup.xlsx", cfg)
    assert result.record_count == 2
    assert (result.created, result.updated) == (2, 0)


def test_import_buffer_derives_missing_fields(write_config: Path, xlsx_bytes, scored_rows):
    from levscore.services import importer

    captured = {}

    def fake_upsert(cursor, organization_id, records):
        captured["records"] = records
        return importer.UpsertResult(created=len(records), updated=0)

    cfg = load_config(write_config)
    cursor = DummyCursor()
    with pytest.MonkeyPatch.context() as mp:
        mp.setattr(importer, "upsert_suppliers", fake_upsert)
        import_buffer(xlsx_bytes(scored_rows), "lev.xlsx", cfg, cursor=cursor)
    acme, beta = captured["records"]
    assert acme.tier == "A-tier"
    assert acme.diagnosis is not None
    assert beta.tier == "C-tier"
    assert cursor.statements == ["INSERT"]


def test_import_buffer_rejected_file(write_config: Path):
    cfg = load_config(write_config)
    with pytest.raises(FileRejectedError, match="invalid XLSX file"):
        import_buffer(b"<html></html>", "lev.xlsx", cfg)
    with pytest.raises(FileRejectedError, match="invalid file type"):
        import_buffer(XLSX_MAGIC, "lev.xlsx", cfg, mime_type="application/pdf")


def test_import_buffer_missing_columns(write_config: Path, xlsx_bytes):
    cfg = load_config(write_config)
    with pytest.raises(MissingColumnsError) as excinfo:
        import_buffer(xlsx_bytes([["Foo", "Bar"], ["1", "2"]]), "bad.xlsx", cfg)
    assert excinfo.value.validation.missing_columns == ["Leverantörsnummer", "Leverantör"]
    assert str(excinfo.value) == "missing columns: Leverantörsnummer, Leverantör. found: Foo, Bar"


def test_import_buffer_raw_mode_full_refresh(xlsx_bytes, fake_store):
    cfg = build_config(
        {
            "organization_id": "org-1",
            "uploader": "u",
            "source_directory": "./data",
            "mode": "raw",
            "full_refresh": True,
            "raw_mapping": {"supplier_number": "LevNr", "supplier_name": "Leverantör", "revenue": "Omsättning"},
        }
    )
    rows = [["LevNr", "Leverantör", "Omsättning"], ["1", "Acme", 900], ["2", "Beta", 100], ["1", "Acme", 100]]
    cursor = DummyCursor()
    cursor.rowcount = 4
    result = import_buffer(xlsx_bytes(rows), "art.xlsx", cfg, cursor=cursor)
    assert result.record_count == 2
    assert result.articles_processed == 3
    assert result.created == 2
    assert result.deleted == 4
    assert cursor.statements[0] == "UPSERT"
    assert cursor.statements[1].startswith("DELETE FROM suppliers")
    assert cursor.statements[2] == "INSERT"


def test_import_buffer_raw_mode_requires_mapping(xlsx_bytes):
    cfg = build_config({"organization_id": "o", "uploader": "u", "source_directory": "d"})
    cfg = replace(cfg, mode="raw")
    with pytest.raises(ImportFailure, match="raw_mapping"):
        import_buffer(xlsx_bytes([["LevNr"], ["1"]]), "a.xlsx", cfg)


def test_import_files_transaction_per_file(write_config: Path, temp_workdir: Path, xlsx_bytes, scored_rows, fake_store):
    data = temp_workdir / "data"
    (data / "a_ok.xlsx").write_bytes(xlsx_bytes(scored_rows))
    (data / "b_bad.xlsx").write_bytes(xlsx_bytes([["Foo"], ["1"]]))
    cfg = load_config(write_config)
    cursor = DummyCursor()
    summary = import_files(cfg, cursor=cursor)

    assert cursor.statements == ["BEGIN", "UPSERT", "INSERT", "COMMIT", "BEGIN", "ROLLBACK"]
    assert (summary.success_files, summary.failed_files) == (1, 1)
    assert summary.total_suppliers == 2
    assert summary.created == 2
    failed = summary.file_results[1]
    assert failed.status is FileStatus.FAILED
    assert failed.error.startswith("missing columns")


def test_import_files_writes_error_log(write_config: Path, temp_workdir: Path):
    bad = temp_workdir / "data" / "empty.csv"
    bad.write_bytes(b"")
    cfg = load_config(write_config)
    error_log = ErrorLogBuffer(temp_workdir / "logs")
    summary = import_files(cfg, [bad], error_log=error_log)

    assert summary.failed_files == 1
    (log_file,) = (temp_workdir / "logs").glob("errors-*.log")
    entry = json.loads(log_file.read_text(encoding="utf-8").strip())
    assert entry["file"] == "empty.csv"
    assert entry["error_type"] == "MISSING_COLUMNS"


def test_import_files_classifies_parse_errors(write_config: Path, temp_workdir: Path, xlsx_bytes):
    path = temp_workdir / "data" / "header_only.xlsx"
    path.write_bytes(xlsx_bytes([["LevNr", "Namn"]]))
    error_log = ErrorLogBuffer(temp_workdir / "logs")
    import_files(load_config(write_config), [path], error_log=error_log)
    (log_file,) = (temp_workdir / "logs").glob("errors-*.log")
    assert json.loads(log_file.read_text(encoding="utf-8"))["error_type"] == "EMPTY_FILE"


def test_import_files_empty_directory(write_config: Path):
    summary = import_files(load_config(write_config))
    assert summary.total_files == 0
    assert summary.total_suppliers == 0
    assert summary.elapsed_seconds >= 0
