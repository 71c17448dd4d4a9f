from __future__ import annotations

import logging
import time
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from ..db.supplier_store import (
    SupplierStoreError,
    UpsertResult,
    delete_missing_suppliers,
    record_upload,
    upsert_suppliers,
)
from ..excel.article_parser import NoValidArticlesError, parse_article_file
from ..excel.file_checks import ALLOWED_EXTENSIONS, check_upload, sanitize_filename
from ..excel.reader import SheetReadError
from ..excel.supplier_parser import (
    EmptyFileError,
    NoValidSuppliersError,
    TooManyRowsError,
    parse_supplier_file,
    validate_headers,
)
from ..logging.error_log import ErrorLogBuffer
from ..models.config_models import ImportConfig
from ..models.import_error_record import ImportErrorRecord, UploadRecord
from ..models.import_result import FileImportResult, FileStatus, ImportSummary
from ..models.supplier_record import HeaderValidationResult, SupplierRecord
from .progress import ImportProgress
from .scoring import aggregate_by_supplier, calculate_all_scores, fill_derived_fields

"""Supplier import orchestration.

``import_buffer`` handles one upload: file checks, header validation, parsing
(pre-scored sheet) or aggregation and scoring (raw article sheet), then the
upsert by business key, the optional full refresh and the upload history
entry. ``import_files`` runs it over several files with one transaction per
file, so a failing file never leaves half its suppliers behind.

Without a cursor nothing is persisted (mock mode) and every distinct supplier
is reported as created.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "ImportFailure",
    "FileRejectedError",
    "MissingColumnsError",
    "ProcessingError",
    "missing_columns_message",
    "import_buffer",
    "scan_upload_files",
    "import_files",
]


class ImportFailure(Exception):
    """Base class for failures reported back to the uploader."""


class FileRejectedError(ImportFailure):
    """The upload failed size, type or signature checks."""


class MissingColumnsError(ImportFailure):
    def __init__(self, validation: HeaderValidationResult) -> None:
        super().__init__(missing_columns_message(validation))
        self.validation = validation


class ProcessingError(Exception):
    """Fatal errors that stop a whole run (e.g. unreadable source directory)."""


_ERROR_TYPES: tuple[tuple[type[BaseException], str], ...] = (
    (FileRejectedError, "FILE_REJECTED"),
    (MissingColumnsError, "MISSING_COLUMNS"),
    (EmptyFileError, "EMPTY_FILE"),
    (TooManyRowsError, "TOO_MANY_ROWS"),
    (NoValidSuppliersError, "NO_VALID_SUPPLIERS"),
    (NoValidArticlesError, "NO_VALID_ARTICLES"),
    (SheetReadError, "UNREADABLE_FILE"),
    (SupplierStoreError, "DATABASE_ERROR"),
    (OSError, "FILE_READ_ERROR"),
)


def _error_type(exc: BaseException) -> str:
    for exc_type, label in _ERROR_TYPES:
        if isinstance(exc, exc_type):
            return label
    return "PROCESSING_ERROR"


def missing_columns_message(validation: HeaderValidationResult) -> str:
    """User-facing message listing missing columns and up to five found headers."""
    found = ", ".join(validation.found_columns[:5])
    if len(validation.found_columns) > 5:
        found += "..."
    return f"missing columns: {', '.join(validation.missing_columns)}. found: {found}"


def _scored_records(buffer: bytes, file_name: str, config: ImportConfig) -> list[SupplierRecord]:
    validation = validate_headers(buffer, file_name)
    if not validation.valid:
        raise MissingColumnsError(validation)
    records = parse_supplier_file(buffer, file_name, max_rows=config.limits.max_rows)
    if config.derive_missing_fields:
        records = [fill_derived_fields(r, config.scoring) for r in records]
    return records


def _raw_records(buffer: bytes, file_name: str, config: ImportConfig) -> tuple[list[SupplierRecord], int]:
    if config.raw_mapping is None:
        raise ImportFailure("raw import requires a column mapping (raw_mapping)")
    articles = parse_article_file(buffer, config.raw_mapping, file_name, max_rows=config.limits.max_rows)
    aggregated = aggregate_by_supplier(articles)
    logger.debug(
        f"{file_name}: {len(articles)} articles -> {len(aggregated)} suppliers, "
        f"revenue={sum(a.revenue for a in articles):.2f}"
    )
    return calculate_all_scores(aggregated, config.scoring), len(articles)


def import_buffer(
    buffer: bytes,
    file_name: str,
    config: ImportConfig,
    cursor: Any = None,
    mime_type: str | None = None,
) -> FileImportResult:
    """Import one uploaded file.

    Args:
        buffer: Raw upload bytes
        file_name: Client-supplied filename (sanitized before it is stored)
        config: Import configuration (mode, limits, thresholds, mapping)
        cursor: psycopg2 cursor; None = mock mode
        mime_type: Content type sent by the client, if any

    Returns:
        FileImportResult with status SUCCESS

    Raises:
        ImportFailure, SupplierParseError, SheetReadError, SupplierStoreError
    """
    start = time.perf_counter()
    check = check_upload(file_name, buffer, mime_type, config.limits.max_file_size)
    if not check.valid:
        raise FileRejectedError(check.error)

    articles_processed = 0
    if config.mode == "raw":
        records, articles_processed = _raw_records(buffer, file_name, config)
    else:
        records = _scored_records(buffer, file_name, config)

    deleted = 0
    stored_name = sanitize_filename(file_name)
    # duplicate supplier numbers collapse to one stored row
    supplier_count = len({r.supplier_number for r in records})
    if cursor is not None:
        upserted = upsert_suppliers(cursor, config.organization_id, records)
        if config.mode == "raw" and config.full_refresh:
            deleted = delete_missing_suppliers(cursor, config.organization_id, [r.supplier_number for r in records])
        record_upload(cursor, UploadRecord.create(config.organization_id, config.uploader, stored_name, supplier_count))
    else:
        upserted = UpsertResult(created=supplier_count, updated=0)

    elapsed = time.perf_counter() - start
    logger.info(
        f"{stored_name}: {supplier_count} suppliers imported "
        f"(created={upserted.created} updated={upserted.updated} deleted={deleted})"
    )
    return FileImportResult(
        file_name=stored_name,
        status=FileStatus.SUCCESS,
        record_count=supplier_count,
        created=upserted.created,
        updated=upserted.updated,
        deleted=deleted,
        articles_processed=articles_processed,
        elapsed_seconds=elapsed,
    )


def scan_upload_files(directory: Path) -> list[Path]:
    """Spreadsheet files directly inside ``directory``, sorted by name."""
    if not directory.exists():
        raise ProcessingError(f"directory not found: {directory}")
    if not directory.is_dir():
        raise ProcessingError(f"path is not a directory: {directory}")
    try:
        return sorted(p for p in directory.iterdir() if p.is_file() and p.suffix.lower() in ALLOWED_EXTENSIONS)
    except OSError as e:
        raise ProcessingError(f"error reading directory {directory}: {e}") from e


def _execute(cursor: Any, statement: str) -> None:
    if cursor is not None:
        cursor.execute(statement)


def _import_single_file(
    path: Path,
    config: ImportConfig,
    cursor: Any,
    error_log: ErrorLogBuffer,
) -> FileImportResult:
    start = time.perf_counter()
    try:
        _execute(cursor, "BEGIN")
        result = import_buffer(path.read_bytes(), path.name, config, cursor)
        _execute(cursor, "COMMIT")
        return result
    except Exception as e:
        if cursor is not None:
            try:
                cursor.execute("ROLLBACK")
            except Exception as rollback_e:
                error_log.append(ImportErrorRecord.create(path.name, "TRANSACTION_ROLLBACK_ERROR", str(rollback_e)))
        error_type = _error_type(e)
        error_log.append(ImportErrorRecord.create(path.name, error_type, str(e)))
        logger.error(f"{path.name}: {e}")
        return FileImportResult(
            file_name=path.name,
            status=FileStatus.FAILED,
            elapsed_seconds=time.perf_counter() - start,
            error=str(e),
        )


def import_files(
    config: ImportConfig,
    paths: list[Path] | None = None,
    cursor: Any = None,
    error_log: ErrorLogBuffer | None = None,
) -> ImportSummary:
    """Import ``paths`` (or every spreadsheet in the source directory).

    Each file runs in its own transaction when a cursor is given; failures are
    written to the error log and the run continues with the next file.

    Raises:
        ProcessingError: the source directory cannot be scanned
    """
    start_time = datetime.now(UTC)
    error_log = error_log if error_log is not None else ErrorLogBuffer()
    if paths is None:
        paths = scan_upload_files(Path(config.source_directory))

    results: list[FileImportResult] = []
    with ImportProgress(len(paths)) as progress:
        for path in paths:
            progress.start_file(path)
            result = _import_single_file(path, config, cursor, error_log)
            results.append(result)
            progress.finish_file(
                success=sum(r.status is FileStatus.SUCCESS for r in results),
                failed=sum(r.status is FileStatus.FAILED for r in results),
            )

    log_path = error_log.flush()
    if log_path is not None:
        logger.warning(f"error details written to {log_path}")

    succeeded = [r for r in results if r.status is FileStatus.SUCCESS]
    end_time = datetime.now(UTC)
    return ImportSummary(
        success_files=len(succeeded),
        failed_files=len(results) - len(succeeded),
        total_suppliers=sum(r.record_count for r in succeeded),
        created=sum(r.created for r in succeeded),
        updated=sum(r.updated for r in succeeded),
        deleted=sum(r.deleted for r in succeeded),
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=(end_time - start_time).total_seconds(),
        file_results=results,
    )
