from __future__ import annotations

import math
from datetime import date, datetime, time
from pathlib import Path
from typing import Any

import pandas as pd

"""Workbook reader (row-oriented).

Wraps pandas.ExcelFile (openpyxl engine) and exposes every sheet as a list of rows,
each row a list of cell strings. Column position is the only join key, so the
reader does no header interpretation beyond slicing rows by the 1-based header row.

Normalisation mirrors what a spreadsheet shows:
- empty / NaN cells become ""
- integral floats are rendered without the trailing ".0"
- trailing empty cells of a row and trailing empty rows are dropped
"""

__all__ = [
    "SUPPORTED_SUFFIXES",
    "SheetNotFoundError",
    "SourceOpenError",
    "WorkbookSource",
    "cell_to_str",
]

SUPPORTED_SUFFIXES = (".xlsx", ".xlsm")


class SourceOpenError(Exception):
    """Raised when a workbook cannot be opened (missing, wrong format, corrupt)."""


class SheetNotFoundError(Exception):
    """Raised when a sheet is requested that the workbook does not contain."""

    def __init__(self, sheet: str, path: Path | str) -> None:
        super().__init__(f"sheet '{sheet}' not found in {Path(path).name}")
        self.sheet = sheet
        self.path = str(path)


def cell_to_str(value: Any) -> str:
    """Render a raw cell value as the string a spreadsheet user would see."""
    if value is None or value is pd.NaT:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, pd.Timestamp):
        value = value.to_pydatetime()
    if isinstance(value, datetime):
        if value.time() == time(0, 0):
            return value.date().isoformat()
        return value.isoformat(sep=" ")
    if isinstance(value, (date, time)):
        return value.isoformat()
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return str(value)


def _trim_row(cells: list[str]) -> list[str]:
    end = len(cells)
    while end > 0 and cells[end - 1] == "":
        end -= 1
    return cells[:end]


class WorkbookSource:
    """An opened workbook. Use as a context manager so it is always closed.

    >>> with WorkbookSource.open("base.xlsx") as src:  # doctest: +SKIP
    ...     rows = src.read_data_rows("Sales", header_row=5)
    """

    def __init__(self, path: Path, excel_file: pd.ExcelFile) -> None:
        self.path = path
        self._xls: pd.ExcelFile | None = excel_file
        self._cache: dict[str, list[list[str]]] = {}

    @classmethod
    def open(cls, path: str | Path) -> WorkbookSource:
        """Open a workbook.

        Raises:
            SourceOpenError: file missing, unsupported extension, or unreadable
        """
        p = Path(path)
        if not p.exists():
            raise SourceOpenError(f"file not found: {p}")
        if p.suffix.lower() not in SUPPORTED_SUFFIXES:
            raise SourceOpenError(
                f"unsupported format '{p.suffix}': only .xlsx and .xlsm files are supported"
            )
        try:
            xls = pd.ExcelFile(p, engine="openpyxl")
        except Exception as e:
            raise SourceOpenError(f"failed to read {p.name}: {e}") from e
        return cls(p, xls)

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def sheet_names(self) -> list[str]:
        return [str(n) for n in self._excel.sheet_names]

    @property
    def _excel(self) -> pd.ExcelFile:
        if self._xls is None:
            raise ValueError(f"workbook {self.name} is closed")
        return self._xls

    def sheet_exists(self, sheet: str) -> bool:
        return sheet in self.sheet_names

    def read_all_rows(self, sheet: str) -> list[list[str]]:
        """All rows of a sheet (1-based row N is index N-1)."""
        if not self.sheet_exists(sheet):
            raise SheetNotFoundError(sheet, self.path)
        if sheet not in self._cache:
            # header=None: every physical row is data; no NA sentinels so "NA" stays text
            df = self._excel.parse(sheet, header=None, dtype=object, keep_default_na=False)
            rows = [_trim_row([cell_to_str(v) for v in raw]) for raw in df.itertuples(index=False)]
            while rows and not rows[-1]:
                rows.pop()
            self._cache[sheet] = rows
        return [list(r) for r in self._cache[sheet]]

    def read_data_rows(self, sheet: str, header_row: int) -> list[list[str]]:
        """Rows strictly after the 1-based header_row ([] when there are none)."""
        rows = self.read_all_rows(sheet)
        if len(rows) <= header_row:
            return []
        return rows[header_row:]

    def read_header_row(self, sheet: str, header_row: int) -> list[str]:
        """The raw header line (rows[header_row-1]); [] if the sheet is shorter."""
        if header_row < 1:
            raise ValueError(f"invalid header row: {header_row}")
        rows = self.read_all_rows(sheet)
        if len(rows) < header_row:
            return []
        return rows[header_row - 1]

    def close(self) -> None:
        if self._xls is not None:
            self._xls.close()
            self._xls = None
        self._cache.clear()

    def __enter__(self) -> WorkbookSource:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
