from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

from tqdm import tqdm

"""Upload progress bar (tqdm, TTY only).

In CI or when output is piped the bar is disabled so logs stay free of ANSI
control sequences; the import itself behaves the same either way.
"""

__all__ = [
    "ImportProgress",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ImportProgress:
    """One bar over the uploaded files; the description shows the current file."""

    def __init__(self, total_files: int, *, description: str = "Importing suppliers") -> None:
        self.description = description
        self.current_file = 0
        self.enabled = is_tty_enabled()
        self.pbar: tqdm[Any] | None = None
        if self.enabled:
            self.pbar = tqdm(total=total_files, desc=description, unit="file", leave=True, ncols=80, ascii=True)

    def start_file(self, file_path: Path) -> None:
        self.current_file += 1
        if self.pbar is not None:
            self.pbar.set_description(f"{self.description} ({file_path.name})")

    def finish_file(self, **stats: Any) -> None:
        """Advance the bar and show running totals as postfix."""
        if self.pbar is not None:
            self.pbar.update(1)
            self.pbar.set_description(self.description)
            if stats:
                self.pbar.set_postfix(**stats)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ImportProgress:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
