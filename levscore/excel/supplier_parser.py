from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from ..models.supplier_record import NUMERIC_FIELDS, TEXT_FIELDS, HeaderValidationResult, SupplierRecord
from .coerce import cell_text, parse_numeric_value, parse_string_value
from .headers import REQUIRED_COLUMNS, SUPPLIER_COLUMN_ALIASES, find_column_value, normalize_header
from .reader import header_row, read_first_sheet, sheet_rows

"""Pre-scored supplier sheet ingestion.

Two entry points are used by the import service:

- ``validate_headers`` checks the header row before anything is parsed, so the
  user gets the list of missing columns together with the headers that were
  actually found.
- ``parse_supplier_file`` turns every data row into a ``SupplierRecord``.

Rows lacking a supplier number or name are skipped without error; only an
import that yields no records at all fails. Cell-level defects are coerced to
defaults and never reported.
"""

__all__ = [
    "EMPTY_FILE_SENTINEL",
    "SupplierParseError",
    "EmptyFileError",
    "TooManyRowsError",
    "NoValidSuppliersError",
    "validate_headers",
    "iter_supplier_records",
    "parse_supplier_file",
]

EMPTY_FILE_SENTINEL = "File is empty"


class SupplierParseError(Exception):
    """Base class for sheet-level ingestion failures."""


class EmptyFileError(SupplierParseError):
    """The first sheet has no data rows."""


class TooManyRowsError(SupplierParseError):
    """The first sheet exceeds the configured row ceiling."""


class NoValidSuppliersError(SupplierParseError):
    """Every row lacked a supplier number or a supplier name."""


def validate_headers(buffer: bytes, filename: str | None = None) -> HeaderValidationResult:
    """Check that every required column is present under one of its aliases."""
    _, df = read_first_sheet(buffer, filename)
    raw_headers = header_row(df)
    if not raw_headers:
        return HeaderValidationResult(valid=False, missing_columns=[EMPTY_FILE_SENTINEL], found_columns=[])

    normalized = {normalize_header(cell_text(h)) for h in raw_headers}
    missing = [
        required.display_name
        for required in REQUIRED_COLUMNS
        if not any(alias in normalized for alias in required.aliases)
    ]
    found = [text for text in (cell_text(h).strip() for h in raw_headers) if text]
    return HeaderValidationResult(valid=not missing, missing_columns=missing, found_columns=found)


def _record_from_row(row: Mapping[str, Any]) -> SupplierRecord | None:
    supplier_number = parse_string_value(find_column_value(row, SUPPLIER_COLUMN_ALIASES["supplier_number"]))
    name = parse_string_value(find_column_value(row, SUPPLIER_COLUMN_ALIASES["name"]))
    if supplier_number is None or name is None:
        return None

    values: dict[str, Any] = {}
    for field_name in NUMERIC_FIELDS:
        values[field_name] = parse_numeric_value(find_column_value(row, SUPPLIER_COLUMN_ALIASES[field_name]))
    for field_name in TEXT_FIELDS:
        values[field_name] = parse_string_value(find_column_value(row, SUPPLIER_COLUMN_ALIASES[field_name]))
    return SupplierRecord(supplier_number=supplier_number, name=name, **values)


def iter_supplier_records(rows: Iterable[Mapping[str, Any]]) -> Iterator[SupplierRecord]:
    """Yield one record per usable row, in row order."""
    for row in rows:
        record = _record_from_row(row)
        if record is not None:
            yield record


def parse_supplier_file(
    buffer: bytes,
    filename: str | None = None,
    max_rows: int | None = None,
) -> list[SupplierRecord]:
    """Parse the first sheet of a pre-scored supplier upload.

    Args:
        buffer: Raw upload bytes
        filename: Original filename, used to pick the reader
        max_rows: Optional ceiling on data rows

    Returns:
        Records in sheet order

    Raises:
        EmptyFileError: no data rows
        TooManyRowsError: more than ``max_rows`` data rows
        NoValidSuppliersError: no row had both a supplier number and a name
    """
    sheet_name, df = read_first_sheet(buffer, filename)
    sheet = sheet_rows(df, sheet_name)
    if not sheet.rows:
        raise EmptyFileError("spreadsheet is empty or contains no data")
    if max_rows is not None and len(sheet.rows) > max_rows:
        raise TooManyRowsError(f"file has too many rows: max {max_rows} rows allowed")

    records = list(iter_supplier_records(sheet.rows))
    if not records:
        raise NoValidSuppliersError(
            'no valid suppliers found in file. Check that the columns "Leverantörsnummer" '
            'and "Leverantör" exist.'
        )
    return records
