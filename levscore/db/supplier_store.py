from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from psycopg2.extras import execute_values

from ..models.import_error_record import UploadRecord
from ..models.supplier_record import DB_COLUMNS, SupplierRecord

"""Supplier persistence on a psycopg2 cursor.

Suppliers are upserted by their business key (organization_id,
supplier_number) in batches via ``psycopg2.extras.execute_values``. Transaction
boundaries belong to the caller (the import service issues BEGIN / COMMIT /
ROLLBACK per file); nothing here commits.
"""

__all__ = [
    "SupplierStoreError",
    "UpsertResult",
    "SUPPLIERS_TABLE",
    "UPLOAD_HISTORY_TABLE",
    "upsert_suppliers",
    "delete_missing_suppliers",
    "record_upload",
]

logger = logging.getLogger(__name__)

SUPPLIERS_TABLE = "suppliers"
UPLOAD_HISTORY_TABLE = "upload_history"


class SupplierStoreError(Exception):
    pass


@dataclass(frozen=True)
class UpsertResult:
    created: int
    updated: int

    @property
    def total(self) -> int:
        return self.created + self.updated


def _last_wins(records: Iterable[SupplierRecord]) -> list[SupplierRecord]:
    # One INSERT ... ON CONFLICT may not touch the same key twice
    latest: dict[str, SupplierRecord] = {}
    for record in records:
        latest.pop(record.supplier_number, None)
        latest[record.supplier_number] = record
    return list(latest.values())


def _upsert_sql(table: str) -> str:
    insert_cols = ("organization_id", *DB_COLUMNS)
    cols_sql = ",".join(f'"{c}"' for c in insert_cols)
    updates = ",".join(f'"{c}" = EXCLUDED."{c}"' for c in DB_COLUMNS if c != "supplier_number")
    return (
        f"INSERT INTO {table} ({cols_sql}) VALUES %s "
        f'ON CONFLICT ("organization_id", "supplier_number") DO UPDATE SET {updates}, "updated_at" = now() '
        "RETURNING (xmax = 0) AS inserted"
    )


def upsert_suppliers(
    cursor: Any,
    organization_id: str,
    records: Sequence[SupplierRecord],
    page_size: int = 500,
    table: str = SUPPLIERS_TABLE,
) -> UpsertResult:
    """Create or update every record keyed by supplier number.

    When a supplier number repeats within ``records`` the last row wins.

    Returns:
        Counts of created and updated suppliers, read from the RETURNING flag
    """
    unique = _last_wins(records)
    if not unique:
        return UpsertResult(created=0, updated=0)

    rows = [(organization_id, *record.as_db_values()) for record in unique]
    start = time.perf_counter()
    try:
        returned = execute_values(cursor, _upsert_sql(table), rows, page_size=page_size, fetch=True)
    except Exception as e:
        raise SupplierStoreError(f"supplier upsert failed: {e}") from e
    logger.debug(f"upserted {len(rows)} suppliers in {time.perf_counter() - start:.3f}s")

    created = sum(1 for r in returned or [] if r[0])
    return UpsertResult(created=created, updated=len(rows) - created)


def delete_missing_suppliers(
    cursor: Any,
    organization_id: str,
    keep_numbers: Iterable[str],
    table: str = SUPPLIERS_TABLE,
) -> int:
    """Delete suppliers of the organization whose number is not in ``keep_numbers``.

    Comparison is trimmed and case-insensitive; suppliers stored with a blank
    number are always removed.
    """
    keep = sorted({n.strip().upper() for n in keep_numbers if n.strip()})
    try:
        cursor.execute(
            f"DELETE FROM {table} WHERE organization_id = %s "
            "AND (btrim(supplier_number) = '' OR NOT (upper(btrim(supplier_number)) = ANY(%s)))",
            (organization_id, keep),
        )
    except Exception as e:
        raise SupplierStoreError(f"supplier cleanup failed: {e}") from e
    return max(cursor.rowcount, 0)


def record_upload(cursor: Any, upload: UploadRecord, table: str = UPLOAD_HISTORY_TABLE) -> None:
    try:
        cursor.execute(
            f"INSERT INTO {table} (organization_id, uploader, file_name, record_count, status, created_at) "
            "VALUES (%s, %s, %s, %s, %s, %s)",
            (
                upload.organization_id,
                upload.uploader,
                upload.file_name,
                upload.record_count,
                upload.status,
                upload.timestamp,
            ),
        )
    except Exception as e:
        raise SupplierStoreError(f"upload history insert failed: {e}") from e
