from __future__ import annotations

from ..models.import_result import ImportSummary

"""SUMMARY line rendering for an import run."""


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # avoid scientific notation
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(summary: ImportSummary) -> str:
    """Render the SUMMARY line for ``summary``.

    Format::

        SUMMARY files={n} success={s} failed={f} suppliers={r} created={c}
        updated={u} deleted={d} elapsed_sec={e}

    >>> from datetime import datetime, timezone
    >>> t = datetime(2024, 1, 1, tzinfo=timezone.utc)
    >>> render_summary_line(ImportSummary(1, 0, 12, 10, 2, 0, t, t, 1.5))
    'SUMMARY files=1 success=1 failed=0 suppliers=12 created=10 updated=2 deleted=0 elapsed_sec=1.5'
    """
    return (
        f"SUMMARY files={summary.total_files} "
        f"success={summary.success_files} "
        f"failed={summary.failed_files} "
        f"suppliers={summary.total_suppliers} "
        f"created={summary.created} "
        f"updated={summary.updated} "
        f"deleted={summary.deleted} "
        f"elapsed_sec={_format_seconds(summary.elapsed_seconds)}"
    )
