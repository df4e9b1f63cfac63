from __future__ import annotations

import logging
from pathlib import Path

from ..excel.reader import SheetNotFoundError, WorkbookSource
from ..models.config_models import SheetMergeConfig

"""Base workbook analysis helpers.

Used before a merge to discover what the base file offers: its sheets, the
header titles of a sheet, and the position of a marker column (e.g. the brand
column of the Ozon template).
"""

__all__ = [
    "AnalyzerError",
    "build_sheet_configs",
    "find_column_in_first_rows",
    "get_headers",
    "get_sheet_names",
]

logger = logging.getLogger(__name__)


class AnalyzerError(Exception):
    """Raised when the base workbook lacks what was asked for."""


def get_sheet_names(path: str | Path) -> list[str]:
    """All sheet names of a workbook (SourceOpenError propagates)."""
    with WorkbookSource.open(path) as src:
        names = src.sheet_names
    if not names:
        raise AnalyzerError(f"workbook {Path(path).name} contains no sheets")
    return names


def get_headers(path: str | Path, sheet: str, header_row: int) -> list[str]:
    """Non-empty header titles found on the 1-based header_row of sheet."""
    if header_row < 1:
        raise AnalyzerError(f"invalid header row: {header_row}")
    with WorkbookSource.open(path) as src:
        if not src.sheet_exists(sheet):
            raise SheetNotFoundError(sheet, path)
        rows = src.read_all_rows(sheet)
    if len(rows) < header_row:
        raise AnalyzerError(
            f"sheet '{sheet}' has only {len(rows)} rows, header row {header_row} requested"
        )
    headers = [h for h in rows[header_row - 1] if h != ""]
    if not headers:
        raise AnalyzerError(f"header row {header_row} of sheet '{sheet}' is empty")
    return headers


def find_column_in_first_rows(path: str | Path, sheet: str, header_row: int, marker: str) -> int:
    """0-based column of the first cell in rows 1..header_row containing marker.

    Matching is case-insensitive. Returns -1 when no cell matches.
    """
    needle = marker.casefold().strip()
    with WorkbookSource.open(path) as src:
        if not src.sheet_exists(sheet):
            raise SheetNotFoundError(sheet, path)
        rows = src.read_all_rows(sheet)[: max(header_row, 1)]
    for row_idx, row in enumerate(rows, start=1):
        for col_idx, cell in enumerate(row):
            if needle and needle in cell.casefold():
                logger.debug("marker=%r found sheet=%s row=%d col=%d", marker, sheet, row_idx, col_idx)
                return col_idx
    return -1


def build_sheet_configs(path: str | Path, header_row: int = 1) -> list[SheetMergeConfig]:
    """Disabled default configs for every sheet of the base workbook."""
    return [
        SheetMergeConfig(sheet_name=name, enabled=False, header_row=header_row)
        for name in get_sheet_names(path)
    ]
