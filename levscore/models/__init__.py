"""Domain models for the supplier import tool."""

from .config_models import ArticleColumnMapping, DatabaseConfig, ImportConfig, ImportLimits, ScoringThresholds
from .import_error_record import ImportErrorRecord, UploadRecord
from .import_result import FileImportResult, FileStatus, ImportSummary
from .supplier_record import HeaderValidationResult, SupplierRecord

__all__ = [
    # Configuration models
    "ArticleColumnMapping",
    "DatabaseConfig",
    "ImportConfig",
    "ImportLimits",
    "ScoringThresholds",
    # Records
    "HeaderValidationResult",
    "SupplierRecord",
    "ImportErrorRecord",
    "UploadRecord",
    # Results
    "FileImportResult",
    "FileStatus",
    "ImportSummary",
]
