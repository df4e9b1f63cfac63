from __future__ import annotations

from ..models.merge_result import MergeResult

"""Summary line rendering for merge results.

The CLI prints one SUMMARY line per run, followed by one line per merged sheet.
"""


def _format_seconds(seconds: float) -> str:
    if seconds == 0:
        return "0"
    if seconds == int(seconds):
        return str(int(seconds))
    if seconds < 0.01:
        # avoid scientific notation for very small numbers
        return f"{seconds:.6f}".rstrip("0").rstrip(".")
    return f"{seconds:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: MergeResult) -> str:
    """Render the SUMMARY line of a merge.

    Format:
    SUMMARY files={files} sheets={sheets} rows={rows} warnings={warnings} elapsed_sec={elapsed}

    Examples:
        >>> from datetime import datetime, timezone
        >>> start = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
        >>> end = datetime(2024, 1, 1, 10, 0, 2, tzinfo=timezone.utc)
        >>> result = MergeResult(
        ...     processed_files=3, processed_sheets=1, total_rows=16,
        ...     sheet_stats={}, warnings=(), start_time=start, end_time=end,
        ...     elapsed_seconds=2.0,
        ... )
        >>> render_summary_line(result)
        'SUMMARY files=3 sheets=1 rows=16 warnings=0 elapsed_sec=2'
    """
    return (
        f"SUMMARY files={result.processed_files} "
        f"sheets={result.processed_sheets} "
        f"rows={result.total_rows} "
        f"warnings={len(result.warnings)} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )


def render_sheet_lines(result: MergeResult) -> list[str]:
    """One line per merged sheet: '  <sheet>: <rows> rows from <files> files'."""
    return [
        f"  {name}: {stat.rows_merged} rows from {stat.files_count} files"
        for name, stat in result.sheet_stats.items()
    ]
