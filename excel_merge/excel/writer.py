from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any

from openpyxl import Workbook
from openpyxl.utils.exceptions import IllegalCharacterError

"""Workbook writer (row-oriented) backed by openpyxl.

The merge writes every output sheet into one in-memory Workbook. Rows are
1-based, cells are written as-is (strings). Persisting is left to the caller via
save(), matching the "save as" step of the desktop flow.
"""

__all__ = [
    "SinkWriteError",
    "WorkbookSink",
]


class SinkWriteError(Exception):
    """Raised when the output workbook cannot be modified or saved."""


class WorkbookSink:
    """Output workbook the orchestrator appends rows to."""

    def __init__(self) -> None:
        self._wb: Workbook | None = Workbook()
        # openpyxl creates a default "Sheet"; dropped on the first create_sheet()
        self._placeholder: str | None = self._wb.active.title if self._wb.active else None

    @property
    def workbook(self) -> Workbook:
        if self._wb is None:
            raise SinkWriteError("output workbook is closed")
        return self._wb

    @property
    def sheet_names(self) -> list[str]:
        names = list(self.workbook.sheetnames)
        if self._placeholder is not None and self._placeholder in names:
            names.remove(self._placeholder)
        return names

    def sheet_exists(self, sheet: str) -> bool:
        return sheet in self.sheet_names

    def create_sheet(self, sheet: str) -> None:
        """Create an empty output sheet.

        Raises:
            SinkWriteError: duplicate or invalid sheet title
        """
        wb = self.workbook
        if self.sheet_exists(sheet):
            raise SinkWriteError(f"failed to create sheet '{sheet}': already exists")
        if sheet == self._placeholder:
            self._placeholder = None
            return
        try:
            ws = wb.create_sheet(title=sheet)
        except ValueError as e:
            raise SinkWriteError(f"failed to create sheet '{sheet}': {e}") from e
        if ws.title != sheet:
            # openpyxl silently renames titles it cannot use as-is
            wb.remove(ws)
            raise SinkWriteError(f"failed to create sheet '{sheet}': invalid title")
        if self._placeholder is not None:
            wb.remove(wb[self._placeholder])
            self._placeholder = None
            wb.active = 0

    def write_rows(self, sheet: str, start_row: int, rows: Sequence[Sequence[Any]]) -> None:
        """Write rows starting at the 1-based start_row, column A onwards."""
        if start_row < 1:
            raise SinkWriteError(f"invalid start row: {start_row}")
        if not self.sheet_exists(sheet):
            raise SinkWriteError(f"sheet '{sheet}' does not exist in the output workbook")
        ws = self.workbook[sheet]
        for offset, row in enumerate(rows):
            for col_idx, value in enumerate(row, start=1):
                if value == "" or value is None:
                    continue
                try:
                    cell = ws.cell(row=start_row + offset, column=col_idx, value=value)
                except (IllegalCharacterError, ValueError) as e:
                    raise SinkWriteError(
                        f"failed to write cell row={start_row + offset} col={col_idx} "
                        f"of sheet '{sheet}': {e}"
                    ) from e
                if isinstance(value, str):
                    # text starting with "=" stays text, not a formula
                    cell.data_type = "s"

    def read_rows(self, sheet: str) -> list[list[str]]:
        """Rows written so far (trailing empty cells trimmed), mainly for inspection."""
        if not self.sheet_exists(sheet):
            raise SinkWriteError(f"sheet '{sheet}' does not exist in the output workbook")
        ws = self.workbook[sheet]
        rows: list[list[str]] = []
        for raw in ws.iter_rows(min_row=1, max_row=ws.max_row, values_only=True):
            cells = ["" if v is None else str(v) for v in raw]
            while cells and cells[-1] == "":
                cells.pop()
            rows.append(cells)
        while rows and not rows[-1]:
            rows.pop()
        return rows

    def save(self, path: str | Path) -> Path:
        """Save the workbook to path (parent directories must exist)."""
        p = Path(path)
        if not self.sheet_names:
            raise SinkWriteError("nothing to save: output workbook has no sheets")
        try:
            self.workbook.save(p)
        except OSError as e:
            raise SinkWriteError(f"failed to save {p}: {e}") from e
        return p

    def close(self) -> None:
        if self._wb is not None:
            self._wb.close()
            self._wb = None

    def __enter__(self) -> WorkbookSink:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
