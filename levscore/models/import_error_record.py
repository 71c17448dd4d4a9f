from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""Import error and upload audit records.

ImportErrorRecord lines go to the JSON Lines error log when a file fails.
UploadRecord is the audit entry written to the upload history after a
successful import (who uploaded which file and how many suppliers it held).
"""

__all__ = [
    "ImportErrorRecord",
    "UploadRecord",
    "utc_timestamp",
]


def utc_timestamp() -> str:
    """ISO8601 UTC timestamp with a 'Z' suffix."""
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class ImportErrorRecord:
    """Structured error line for a file that could not be imported.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Uploaded filename
        error_type: Classification in UPPER_SNAKE_CASE
        message: Message shown to the uploader
    """
    timestamp: str
    file: str
    error_type: str
    message: str

    @staticmethod
    def create(file: str, error_type: str, message: str) -> ImportErrorRecord:
        return ImportErrorRecord(timestamp=utc_timestamp(), file=file, error_type=error_type, message=message)

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)


@dataclass(frozen=True)
class UploadRecord:
    timestamp: str
    organization_id: str
    uploader: str
    file_name: str  # sanitized
    record_count: int
    status: str = "completed"

    @staticmethod
    def create(organization_id: str, uploader: str, file_name: str, record_count: int) -> UploadRecord:
        return UploadRecord(
            timestamp=utc_timestamp(),
            organization_id=organization_id,
            uploader=uploader,
            file_name=file_name,
            record_count=record_count,
        )

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
