from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

"""Config dataclasses for the Excel workbook merger.

This module defines the in-memory shape of merge rules. They are produced by the
profile loader in excel_merge/config/loader.py (or built directly by callers) and
consumed by the merge orchestrator.

SheetMergeConfig describes one sheet; MergeRequest bundles the base file, the
additional files and the per-sheet rules for a single merge call.
"""

__all__ = [
    "DEFAULT_KEY_MARKER",
    "DEFAULT_TEMPLATE_SHEET",
    "MergeRequest",
    "SheetMergeConfig",
]

# Key-source sheet of the Ozon upload template
DEFAULT_TEMPLATE_SHEET = "Шаблон"
# Substring of the key column header ("Артикул*")
DEFAULT_KEY_MARKER = "артикул"


@dataclass(frozen=True)
class SheetMergeConfig:
    """Merge rules for a single sheet.

    header_row is 1-based: rows 1..header_row are copied verbatim from the base
    file, rows after it are data. filter_column is 0-based, -1 disables the
    column-value filter.
    """
    sheet_name: str
    enabled: bool = True
    header_row: int = 1
    filter_column: int = -1
    filter_values: tuple[str, ...] = ()
    use_extracted_keys: bool = False  # gate rows by keys of a key-source sheet
    extract_keys: bool = False  # this sheet produces keys for dependents
    depends_on: tuple[str, ...] = ()
    headers: tuple[str, ...] = ()  # informational, as stored in the profile

    def __post_init__(self) -> None:
        # list -> tuple so that instances stay hashable / immutable
        object.__setattr__(self, "filter_values", tuple(self.filter_values))
        object.__setattr__(self, "depends_on", tuple(self.depends_on))
        object.__setattr__(self, "headers", tuple(self.headers))
        if not self.sheet_name:
            raise ValueError("sheet_name must not be empty")
        if self.header_row < 1:
            raise ValueError(
                f"sheet '{self.sheet_name}': header_row must be >= 1, got {self.header_row}"
            )
        if self.filter_column >= 0 and not self.filter_values:
            raise ValueError(
                f"sheet '{self.sheet_name}': filter_column={self.filter_column} "
                "requires non-empty filter_values"
            )

    @property
    def value_filter_enabled(self) -> bool:
        return self.filter_column >= 0 and bool(self.filter_values)


@dataclass(frozen=True)
class MergeRequest:
    """Everything a single merge call needs.

    The base file is always processed first and provides the header block of
    every output sheet. sheet_configs keeps insertion order; that order is used
    for sheets that have no dependency between them.
    """
    base_file: str
    additional_files: tuple[str, ...] = ()
    sheet_configs: Mapping[str, SheetMergeConfig] = field(default_factory=dict)
    template_sheet: str | None = DEFAULT_TEMPLATE_SHEET
    key_marker: str = DEFAULT_KEY_MARKER

    def __post_init__(self) -> None:
        object.__setattr__(self, "base_file", str(self.base_file) if self.base_file else "")
        object.__setattr__(self, "additional_files", tuple(str(p) for p in self.additional_files))

    @classmethod
    def from_configs(
        cls,
        base_file: str,
        additional_files: Iterable[str],
        configs: Iterable[SheetMergeConfig],
        **kwargs: object,
    ) -> MergeRequest:
        """Build a request from a sequence of sheet configs (keyed by sheet_name)."""
        return cls(
            base_file=base_file,
            additional_files=tuple(additional_files),
            sheet_configs={c.sheet_name: c for c in configs},
            **kwargs,  # type: ignore[arg-type]
        )

    @property
    def all_files(self) -> list[str]:
        """Base file followed by the additional files, in processing order."""
        return [self.base_file, *self.additional_files]

    def enabled_configs(self) -> dict[str, SheetMergeConfig]:
        return {name: cfg for name, cfg in self.sheet_configs.items() if cfg.enabled}

    def is_key_source(self, sheet_name: str) -> bool:
        """True when the sheet's surviving rows feed the extracted key set."""
        cfg = self.sheet_configs.get(sheet_name)
        if cfg is None:
            return False
        return cfg.extract_keys or (
            self.template_sheet is not None and sheet_name == self.template_sheet
        )
