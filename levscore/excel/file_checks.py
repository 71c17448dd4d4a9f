from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import PurePath

"""Upload checks run before a spreadsheet is parsed.

Order: size, extension, MIME type, magic bytes. The first failing check wins
and its message is what the uploader sees. MIME types can be spoofed, which is
why the leading bytes are compared against the xlsx (ZIP) and xls (OLE2)
signatures as well.
"""

__all__ = [
    "MAX_FILE_SIZE",
    "MAX_ROWS",
    "ALLOWED_EXTENSIONS",
    "ALLOWED_MIME_TYPES",
    "XLSX_MAGIC",
    "XLS_MAGIC",
    "FileCheckResult",
    "file_extension",
    "check_file_size",
    "check_file_extension",
    "check_mime_type",
    "check_magic_bytes",
    "check_upload",
    "sanitize_filename",
]

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MiB
MAX_ROWS = 100_000

ALLOWED_EXTENSIONS = (".xlsx", ".xls", ".csv")
ALLOWED_MIME_TYPES = (
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-excel",
    "text/csv",
    "application/csv",
)

XLSX_MAGIC = b"PK\x03\x04"
XLS_MAGIC = b"\xd0\xcf\x11\xe0"
UTF8_BOM = b"\xef\xbb\xbf"

_CSV_SCAN_BYTES = 100


@dataclass(frozen=True)
class FileCheckResult:
    valid: bool
    error: str | None = None


_OK = FileCheckResult(valid=True)


def file_extension(filename: str) -> str:
    return PurePath(filename).suffix.lower()


def check_file_size(size: int, max_file_size: int = MAX_FILE_SIZE) -> FileCheckResult:
    if size > max_file_size:
        return FileCheckResult(
            valid=False,
            error=f"file too large: max {max_file_size // (1024 * 1024)}MB allowed",
        )
    return _OK


def check_file_extension(filename: str) -> FileCheckResult:
    if file_extension(filename) not in ALLOWED_EXTENSIONS:
        return FileCheckResult(
            valid=False,
            error=f"invalid file type: allowed formats are {', '.join(ALLOWED_EXTENSIONS)}",
        )
    return _OK


def check_mime_type(mime_type: str | None) -> FileCheckResult:
    # Some browsers send no type at all
    if mime_type and mime_type not in ALLOWED_MIME_TYPES:
        return FileCheckResult(
            valid=False,
            error="invalid file type: upload an Excel file (.xlsx, .xls) or CSV",
        )
    return _OK


def _csv_head_is_text(head: bytes) -> bool:
    start = len(UTF8_BOM) if head.startswith(UTF8_BOM) else 0
    for byte in head[start:_CSV_SCAN_BYTES]:
        if byte in (0x09, 0x0A, 0x0D):
            continue
        if byte < 0x20 or byte > 0x7E:
            return False
    return True


def check_magic_bytes(filename: str, head: bytes) -> FileCheckResult:
    """Compare the first bytes of the upload with the signature its extension implies."""
    ext = file_extension(filename)
    if ext == ".csv":
        if not _csv_head_is_text(head):
            return FileCheckResult(valid=False, error="invalid CSV file: file contains invalid characters")
        return _OK
    if ext == ".xlsx" and not head.startswith(XLSX_MAGIC):
        return FileCheckResult(valid=False, error="invalid XLSX file: file looks corrupt or tampered with")
    if ext == ".xls" and not head.startswith(XLS_MAGIC):
        return FileCheckResult(valid=False, error="invalid XLS file: file looks corrupt or tampered with")
    return _OK


def check_upload(
    filename: str,
    data: bytes,
    mime_type: str | None = None,
    max_file_size: int = MAX_FILE_SIZE,
) -> FileCheckResult:
    """Run every upload check in order and return the first failure."""
    for result in (
        check_file_size(len(data), max_file_size),
        check_file_extension(filename),
        check_mime_type(mime_type),
    ):
        if not result.valid:
            return result
    return check_magic_bytes(filename, data[:1024])


def sanitize_filename(filename: str) -> str:
    """Strip path traversal from a client-supplied filename."""
    cleaned = re.sub(r"[\\/]", "_", filename)
    cleaned = cleaned.replace("\0", "")
    cleaned = cleaned.replace("..", "_")
    return cleaned[:255]
