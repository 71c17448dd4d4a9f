from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from typing import Any

import pandas as pd

from .coerce import cell_text
from .file_checks import XLS_MAGIC, XLSX_MAGIC, file_extension

"""First-sheet spreadsheet reader.

Only the first sheet of a workbook is read; its first non-blank row is the
header row. Cells are kept as raw objects (no dtype inference, no NA-string
conversion) so header text and values reach the coercers untouched.

pandas does the reading: openpyxl for .xlsx, xlrd for .xls and the C parser
for .csv with a sniffed delimiter.
"""

__all__ = [
    "SheetReadError",
    "SheetData",
    "HeaderPreview",
    "FilePreview",
    "read_first_sheet",
    "header_row",
    "sheet_rows",
    "preview_file",
]

EMPTY_HEADER_KEY = "__EMPTY"
CSV_DELIMITERS = ",;\t"
PREVIEW_ROWS = 3
PREVIEW_WIDTH = 50


class SheetReadError(Exception):
    """Raised when the buffer cannot be read as a spreadsheet."""


@dataclass
class SheetData:
    sheet_name: str
    columns: list[str]
    rows: list[dict[str, Any]]  # header text -> cell, "" for absent cells


@dataclass(frozen=True)
class HeaderPreview:
    index: int
    name: str
    preview: list[str]


@dataclass(frozen=True)
class FilePreview:
    filename: str | None
    sheet_name: str
    headers: list[HeaderPreview]
    row_count: int  # data rows, header excluded


def _detect_format(buffer: bytes, filename: str | None) -> str:
    if filename:
        ext = file_extension(filename)
        if ext in (".xlsx", ".xls", ".csv"):
            return ext
    if buffer.startswith(XLSX_MAGIC):
        return ".xlsx"
    if buffer.startswith(XLS_MAGIC):
        return ".xls"
    return ".csv"


def _sniff_delimiter(text: str) -> str:
    sample = text[:4096]
    try:
        return csv.Sniffer().sniff(sample, delimiters=CSV_DELIMITERS).delimiter
    except csv.Error:
        return ","


def _read_csv(buffer: bytes) -> pd.DataFrame:
    text = buffer.decode("utf-8-sig", errors="replace")
    if not text.strip():
        return pd.DataFrame()
    sep = _sniff_delimiter(text)
    # Rows wider than the header keep their extra cells under blank headers
    width = max(len(fields) for fields in csv.reader(io.StringIO(text), delimiter=sep))
    return pd.read_csv(
        io.StringIO(text),
        sep=sep,
        header=None,
        names=list(range(width)),
        dtype=object,
        keep_default_na=False,
        skip_blank_lines=True,
    )


def read_first_sheet(buffer: bytes, filename: str | None = None) -> tuple[str, pd.DataFrame]:
    """Read the first sheet of ``buffer`` without a header.

    Parameters
    ----------
    buffer: raw upload bytes
    filename: used to pick the format; magic bytes decide when it is missing

    Returns
    -------
    (sheet name, raw DataFrame with every cell as object)
    """
    fmt = _detect_format(buffer, filename)
    try:
        if fmt == ".csv":
            return "Sheet1", _drop_leading_blank_rows(_read_csv(buffer))
        engine = "openpyxl" if fmt == ".xlsx" else "xlrd"
        xls = pd.ExcelFile(io.BytesIO(buffer), engine=engine)
        if not xls.sheet_names:
            return "Sheet1", pd.DataFrame()
        name = xls.sheet_names[0]
        df = xls.parse(name, header=None, dtype=object, keep_default_na=False, na_values=[])
        return str(name), _drop_leading_blank_rows(df)
    except Exception as e:
        raise SheetReadError(f"could not read spreadsheet: {e}") from e


def _cell(value: Any) -> Any:
    # Absent cells read as NaN/None depending on engine; downstream expects ""
    if value is None:
        return ""
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return value


def _is_blank_row(values: Any) -> bool:
    return all(isinstance(v, str) and v.strip() == "" for v in map(_cell, values))


def _drop_leading_blank_rows(df: pd.DataFrame) -> pd.DataFrame:
    # The header is the first non-blank row, like a sheet's used range
    for position, values in enumerate(df.itertuples(index=False, name=None)):
        if not _is_blank_row(values):
            return df.iloc[position:].reset_index(drop=True)
    return df.iloc[0:0]


def header_row(df: pd.DataFrame) -> list[Any]:
    """Raw cells of row 0, or an empty list when the sheet has no rows."""
    if df.shape[0] == 0:
        return []
    return [_cell(v) for v in df.iloc[0].tolist()]


def _header_keys(raw_headers: list[Any]) -> list[str]:
    keys: list[str] = []
    seen: dict[str, int] = {}
    for raw in raw_headers:
        key = cell_text(raw) if raw != "" else EMPTY_HEADER_KEY
        if key in seen:
            seen[key] += 1
            key = f"{key}_{seen[key]}"
        else:
            seen[key] = 0
        keys.append(key)
    return keys


def sheet_rows(df: pd.DataFrame, sheet_name: str = "Sheet1") -> SheetData:
    """Turn a raw first-sheet DataFrame into header-keyed row dicts.

    Steps:
    1. Row 0 becomes the keys (blank header -> ``__EMPTY``, repeats suffixed)
    2. Remaining rows become dicts, absent cells filled with ""
    3. Rows where every cell is blank are dropped
    """
    if df.shape[0] == 0:
        return SheetData(sheet_name=sheet_name, columns=[], rows=[])
    columns = _header_keys(header_row(df))
    rows: list[dict[str, Any]] = []
    for raw in df.iloc[1:].itertuples(index=False, name=None):
        if _is_blank_row(raw):
            continue
        values = [_cell(v) for v in raw]
        rows.append(dict(zip(columns, values, strict=False)))
    return SheetData(sheet_name=sheet_name, columns=columns, rows=rows)


def preview_file(buffer: bytes, filename: str | None = None) -> FilePreview:
    """Headers of the first sheet with a few sample values each."""
    sheet_name, df = read_first_sheet(buffer, filename)
    if df.shape[0] == 0:
        raise SheetReadError("file is empty")
    sample = [[_cell(v) for v in row] for row in df.iloc[1 : 1 + PREVIEW_ROWS].itertuples(index=False, name=None)]
    headers: list[HeaderPreview] = []
    for index, raw in enumerate(header_row(df)):
        name = cell_text(raw).strip()
        if not name:
            continue
        values = [cell_text(row[index])[:PREVIEW_WIDTH] if index < len(row) else "" for row in sample]
        headers.append(HeaderPreview(index=index, name=name, preview=values))
    return FilePreview(
        filename=filename,
        sheet_name=sheet_name,
        headers=headers,
        row_count=df.shape[0] - 1,
    )
