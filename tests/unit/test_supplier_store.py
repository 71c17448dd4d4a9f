from __future__ import annotations

import pytest

from levscore.db.supplier_store import (
    SupplierStoreError,
    UpsertResult,
    delete_missing_suppliers,
    record_upload,
    upsert_suppliers,
)
from levscore.models.import_error_record import UploadRecord
from levscore.models.supplier_record import DB_COLUMNS, SupplierRecord


class DummyCursor:
    def __init__(self, rowcount: int = 0) -> None:
        self.queries: list[str] = []
        self.params: list[tuple] = []
        self.rows: list[tuple] = []
        self.rowcount = rowcount

    def execute(self, sql, params=None):
        self.queries.append(sql)
        self.params.append(params)


# execute_values is patched inside the module so no database is needed


@pytest.fixture(autouse=True)
def patch_execute_values(monkeypatch):
    import levscore.db.supplier_store as store

    def fake_execute_values(cursor, sql, rows, template=None, page_size=100, fetch=False):
        cursor.queries.append(sql)
        cursor.rows = list(rows)
        # pretend every odd supplier number already existed
        return [(int(r[1]) % 2 == 0,) for r in rows] if fetch else None

    monkeypatch.setattr(store, "execute_values", fake_execute_values)
    return fake_execute_values


def test_upsert_counts_created_and_updated():
    cur = DummyCursor()
    records = [SupplierRecord(str(n), f"L{n}") for n in (2, 3, 4)]
    res = upsert_suppliers(cur, "org-1", records)
    assert res == UpsertResult(created=2, updated=1)
    assert res.total == 3


def test_upsert_sql_shape():
    cur = DummyCursor()
    upsert_suppliers(cur, "org-1", [SupplierRecord("2", "A")])
    sql = cur.queries[0]
    assert sql.startswith('INSERT INTO suppliers ("organization_id","supplier_number","name",')
    assert 'ON CONFLICT ("organization_id", "supplier_number") DO UPDATE SET' in sql
    assert '"supplier_number" = EXCLUDED' not in sql
    assert '"total_tb" = EXCLUDED."total_tb"' in sql
    assert sql.endswith("RETURNING (xmax = 0) AS inserted")
    assert cur.rows[0][0] == "org-1"
    assert len(cur.rows[0]) == len(DB_COLUMNS) + 1


def test_upsert_duplicate_numbers_last_row_wins():
    cur = DummyCursor()
    res = upsert_suppliers(cur, "org-1", [SupplierRecord("2", "Först"), SupplierRecord("4", "B"), SupplierRecord("2", "Sist")])
    assert [(r[1], r[2]) for r in cur.rows] == [("4", "B"), ("2", "Sist")]
    assert res.total == 2


def test_upsert_empty_is_noop():
    cur = DummyCursor()
    assert upsert_suppliers(cur, "org-1", []) == UpsertResult(created=0, updated=0)
    assert cur.queries == []


def test_upsert_wraps_driver_errors(monkeypatch):
    import levscore.db.supplier_store as store

    def boom(*args, **kwargs):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(store, "execute_values", boom)
    with pytest.raises(SupplierStoreError, match="connection reset"):
        upsert_suppliers(DummyCursor(), "org-1", [SupplierRecord("1", "A")])


def test_delete_missing_suppliers_normalizes_keep_list():
    cur = DummyCursor(rowcount=3)
    deleted = delete_missing_suppliers(cur, "org-1", [" a1 ", "B2", "", "A1"])
    assert deleted == 3
    assert "DELETE FROM suppliers" in cur.queries[0]
    assert cur.params[0] == ("org-1", ["A1", "B2"])


def test_delete_missing_suppliers_negative_rowcount():
    assert delete_missing_suppliers(DummyCursor(rowcount=-1), "org-1", ["1"]) == 0


def test_record_upload():
    cur = DummyCursor()
    upload = UploadRecord.create("org-1", "anna@example.com", "lev.xlsx", 12)
    record_upload(cur, upload)
    assert cur.queries[0].startswith("INSERT INTO upload_history")
    assert cur.params[0][:5] == ("org-1", "anna@example.com", "lev.xlsx", 12, "completed")
