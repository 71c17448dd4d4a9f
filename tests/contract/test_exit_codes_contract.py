from __future__ import annotations

from levscore.cli.main import EXIT_FATAL, EXIT_PARTIAL_FAILURE, EXIT_SUCCESS_ALL

"""Exit codes: 0 all files imported, 1 fatal (config/directory), 2 at least one file failed."""


def test_exit_code_values():
    assert (EXIT_SUCCESS_ALL, EXIT_FATAL, EXIT_PARTIAL_FAILURE) == (0, 1, 2)
