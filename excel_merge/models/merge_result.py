from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from .warning_record import WarningRecord

if TYPE_CHECKING:
    from ..excel.writer import WorkbookSink

"""Result and progress models for the Excel workbook merger.

This module defines the values that flow out of a merge call:

- SheetStat / MergeResult: aggregated statistics, returned once the merge completes
- ProgressUpdate: one event per (file, sheet) pair processed
- MergeContext: extracted key sets threaded from key-source sheets to dependents
"""

__all__ = [
    "MergeContext",
    "MergeResult",
    "ProgressUpdate",
    "SheetStat",
]


@dataclass(frozen=True)
class SheetStat:
    """Per-sheet merge statistics."""
    rows_merged: int  # surviving data rows written for this sheet
    files_count: int  # files attempted (base + additional)


@dataclass(frozen=True)
class ProgressUpdate:
    """Progress event emitted by the orchestrator.

    total = enabled sheets * (1 + additional files); current counts processed
    (file, sheet) pairs starting at 1.
    """
    current: int
    total: int
    message: str

    @property
    def fraction(self) -> float:
        if self.total <= 0:
            return 0.0
        return min(1.0, self.current / self.total)


@dataclass(frozen=True)
class MergeContext:
    """Immutable key sets produced by key-source sheets within one merge call.

    A new context is returned by with_keys(); the previous one is never mutated,
    so each sheet pass sees exactly the keys produced before it started.
    """
    keys_by_sheet: Mapping[str, frozenset[str]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        frozen = {name: frozenset(keys) for name, keys in self.keys_by_sheet.items()}
        object.__setattr__(self, "keys_by_sheet", MappingProxyType(frozen))

    def with_keys(self, sheet_name: str, keys: Iterable[str]) -> MergeContext:
        merged = dict(self.keys_by_sheet)
        merged[sheet_name] = frozenset(keys)
        return MergeContext(merged)

    def keys_for(self, sheet_names: Iterable[str]) -> frozenset[str]:
        """Union of the key sets of the given key-source sheets (missing -> empty)."""
        result: set[str] = set()
        for name in sheet_names:
            result.update(self.keys_by_sheet.get(name, frozenset()))
        return frozenset(result)


@dataclass(frozen=True)
class MergeResult:
    """Aggregated result of a successful merge.

    workbook holds the merged output; the caller saves and closes it.
    """
    processed_files: int
    processed_sheets: int
    total_rows: int
    sheet_stats: Mapping[str, SheetStat]
    warnings: tuple[str, ...]
    start_time: datetime
    end_time: datetime
    elapsed_seconds: float
    warning_records: tuple[WarningRecord, ...] = ()
    workbook: WorkbookSink | Any = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "sheet_stats", MappingProxyType(dict(self.sheet_stats)))
        object.__setattr__(self, "warnings", tuple(self.warnings))
        object.__setattr__(self, "warning_records", tuple(self.warning_records))

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)
