from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

"""Import result models.

FileImportResult describes one uploaded file; ImportSummary aggregates a run
over several files and feeds the SUMMARY line.
"""

__all__ = [
    "FileStatus",
    "FileImportResult",
    "ImportSummary",
]


class FileStatus(Enum):
    """Lifecycle of one uploaded file: pending -> processing -> (success | failed)."""
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class FileImportResult:
    file_name: str
    status: FileStatus
    record_count: int = 0  # suppliers written
    created: int = 0
    updated: int = 0
    deleted: int = 0  # full refresh only
    articles_processed: int = 0  # raw mode only
    elapsed_seconds: float = 0.0
    error: str | None = None  # message shown to the uploader


@dataclass(frozen=True)
class ImportSummary:
    success_files: int
    failed_files: int
    total_suppliers: int
    created: int
    updated: int
    deleted: int
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    file_results: list[FileImportResult] = field(default_factory=list)

    @property
    def total_files(self) -> int:
        return self.success_files + self.failed_files
