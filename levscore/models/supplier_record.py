from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

"""SupplierRecord and HeaderValidationResult models.

SupplierRecord is the normalized shape of one supplier row after spreadsheet
ingestion (pre-scored upload) or after score calculation (raw article upload).
Records are immutable; the persistence layer decides whether a record creates
or updates a stored supplier keyed by ``supplier_number``.
"""

__all__ = [
    "SupplierRecord",
    "HeaderValidationResult",
    "NUMERIC_FIELDS",
    "TEXT_FIELDS",
    "DB_COLUMNS",
]

NUMERIC_FIELDS: tuple[str, ...] = (
    "row_count",
    "total_quantity",
    "total_revenue",
    "avg_margin",
    "sales_score",
    "assortment_score",
    "efficiency_score",
    "margin_score",
    "total_score",
    "revenue_share",
    "accumulated_share",
)

TEXT_FIELDS: tuple[str, ...] = (
    "diagnosis",
    "short_action",
    "tier",
    "profile",
)

# Column order used by the supplier upsert statement
DB_COLUMNS: tuple[str, ...] = (
    "supplier_number",
    "name",
    *NUMERIC_FIELDS,
    "total_tb",
    *TEXT_FIELDS,
)


@dataclass(frozen=True)
class SupplierRecord:
    """One supplier after ingestion.

    Numeric metrics default to 0 and never hold NaN. Text fields are None when
    the spreadsheet had nothing for them, never an empty string.
    """
    supplier_number: str  # business key
    name: str
    row_count: float = 0
    total_quantity: float = 0
    total_revenue: float = 0
    avg_margin: float = 0
    sales_score: float = 0
    assortment_score: float = 0
    efficiency_score: float = 0
    margin_score: float = 0
    total_score: float = 0
    revenue_share: float = 0
    accumulated_share: float = 0
    diagnosis: str | None = None
    short_action: str | None = None
    tier: str | None = None
    profile: str | None = None
    total_tb: float | None = None  # gross profit sum, raw imports only

    def as_db_values(self) -> tuple[Any, ...]:
        """Values in DB_COLUMNS order."""
        return tuple(getattr(self, name) for name in DB_COLUMNS)


@dataclass(frozen=True)
class HeaderValidationResult:
    """Transient report of the required-column check on the header row."""
    valid: bool
    missing_columns: list[str] = field(default_factory=list)  # canonical display names
    found_columns: list[str] = field(default_factory=list)  # non-empty headers, file order
