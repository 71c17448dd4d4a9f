from __future__ import annotations

from dataclasses import dataclass, field

from ..excel.file_checks import MAX_FILE_SIZE, MAX_ROWS

"""Config dataclasses for the supplier import tool.

The loader in ``levscore.config.loader`` builds these from YAML after schema
validation; everything else in the package only sees the dataclasses.
"""

__all__ = [
    "DatabaseConfig",
    "ImportLimits",
    "ScoringThresholds",
    "ArticleColumnMapping",
    "ImportConfig",
    "IMPORT_MODES",
]

IMPORT_MODES = ("scored", "raw")


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection fallback.

    Environment variables (DATABASE_URL, PGDSN, PGHOST, ...) take precedence.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ImportLimits:
    max_file_size: int = MAX_FILE_SIZE  # bytes
    max_rows: int = MAX_ROWS  # data rows, header excluded


@dataclass(frozen=True)
class ScoringThresholds:
    """Cut-offs used by diagnosis and short-action rules."""
    strong_total: float = 8  # total score >= this -> strong supplier
    breadth_low: float = 0.7  # assortment score below -> narrow range
    efficiency_ok: float = 0.7
    sales_ok: float = 1  # sales score >= this -> near the top
    revenue_ok: float = 100_000  # revenue counted as real demand
    revenue_low: float = 50_000
    rows_min_activity: int = 5


@dataclass(frozen=True)
class ArticleColumnMapping:
    """Literal header names of a raw article sheet.

    supplier_number, supplier_name and revenue are mandatory; the rest may be
    left unmapped.
    """
    supplier_number: str
    supplier_name: str
    revenue: str
    article_number: str | None = None
    description: str | None = None
    quantity: str | None = None
    margin: str | None = None
    gross_profit: str | None = None


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration for an import run."""
    organization_id: str  # tenant the suppliers belong to
    uploader: str  # recorded in the upload history
    source_directory: str  # scanned when no files are given on the command line
    mode: str = "scored"  # scored | raw
    full_refresh: bool = False  # raw mode: delete suppliers missing from the file
    derive_missing_fields: bool = True  # scored mode: fill diagnosis/action/tier
    limits: ImportLimits = field(default_factory=ImportLimits)
    scoring: ScoringThresholds = field(default_factory=ScoringThresholds)
    raw_mapping: ArticleColumnMapping | None = None
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
