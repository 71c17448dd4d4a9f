from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

from levscore.services.progress import ImportProgress, is_tty_enabled


def test_is_tty_enabled_returns_stdout_isatty():
    with patch("sys.stdout.isatty", return_value=True):
        assert is_tty_enabled() is True
    with patch("sys.stdout.isatty", return_value=False):
        assert is_tty_enabled() is False


def test_progress_with_tty():
    with patch("levscore.services.progress.is_tty_enabled", return_value=True), patch(
        "levscore.services.progress.tqdm"
    ) as mock_tqdm:
        with ImportProgress(2, description="Importing") as progress:
            mock_tqdm.assert_called_once_with(
                total=2, desc="Importing", unit="file", leave=True, ncols=80, ascii=True
            )
            bar = mock_tqdm.return_value
            progress.start_file(Path("data/lev.xlsx"))
            bar.set_description.assert_called_with("Importing (lev.xlsx)")
            progress.finish_file(success=1, failed=0)
            bar.update.assert_called_once_with(1)
            bar.set_postfix.assert_called_once_with(success=1, failed=0)
        bar.close.assert_called_once()
        assert progress.current_file == 1


def test_progress_without_tty_is_silent():
    with patch("levscore.services.progress.is_tty_enabled", return_value=False), patch(
        "levscore.services.progress.tqdm"
    ) as mock_tqdm:
        progress = ImportProgress(3)
        progress.start_file(Path("a.xlsx"))
        progress.finish_file()
        progress.close()
        mock_tqdm.assert_not_called()
        assert progress.enabled is False
