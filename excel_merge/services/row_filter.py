from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from ..models.config_models import DEFAULT_KEY_MARKER

"""Row filter pipeline.

Pure, stateless transformations over a batch of rows (each row a list of cell
strings). Every stage returns a new list and never resurrects a row removed by an
earlier stage, so chaining stages narrows the batch monotonically.

Stage order used by the merge (apply_pipeline):
1. blank-row removal (always)
2. column-value allow-list filter (when a column and values are configured)
3. key extraction (key-source sheets only)
4. key-based filter (sheets that use extracted keys; fail-closed)
"""

__all__ = [
    "FilterOutcome",
    "Row",
    "apply_pipeline",
    "extract_keys",
    "filter_blank_rows",
    "filter_by_column_values",
    "filter_by_keys",
    "find_key_column",
    "normalize_value",
]

Row = list[str]


def normalize_value(value: str) -> str:
    """Trim surrounding whitespace and case-fold (used for allow-list matching)."""
    return value.strip().casefold()


def filter_blank_rows(rows: Iterable[Sequence[str]]) -> list[Row]:
    """Drop rows whose every cell is the empty string.

    A cell containing only spaces is not empty; a row with one non-empty cell is kept.
    """
    return [list(row) for row in rows if any(cell != "" for cell in row)]


def filter_by_column_values(
    rows: Iterable[Sequence[str]], column: int, values: Iterable[str]
) -> list[Row]:
    """Keep rows whose cell at column matches one of values (trim + casefold).

    Identity when column < 0 or values is empty. Rows too short to have the column
    are discarded (non-matching), not reported as errors.
    """
    allowed = {normalize_value(v) for v in values}
    if column < 0 or not allowed:
        return [list(row) for row in rows]
    return [
        list(row)
        for row in rows
        if column < len(row) and normalize_value(row[column]) in allowed
    ]


def find_key_column(header: Sequence[str], marker: str = DEFAULT_KEY_MARKER) -> int:
    """Index of the first header cell containing marker (case-insensitive), or -1."""
    needle = marker.casefold()
    if not needle:
        return -1
    for idx, title in enumerate(header):
        if needle in title.casefold():
            return idx
    return -1


def extract_keys(
    header: Sequence[str], rows: Iterable[Sequence[str]], marker: str = DEFAULT_KEY_MARKER
) -> set[str]:
    """Distinct non-empty trimmed values of the key column; empty when it is absent."""
    col = find_key_column(header, marker)
    if col < 0:
        return set()
    keys: set[str] = set()
    for row in rows:
        if col < len(row):
            key = row[col].strip()
            if key:
                keys.add(key)
    return keys


def filter_by_keys(
    header: Sequence[str],
    rows: Iterable[Sequence[str]],
    keys: Iterable[str],
    marker: str = DEFAULT_KEY_MARKER,
) -> list[Row]:
    """Keep rows whose trimmed key-column value is in keys.

    Fail-closed: returns [] when keys is empty or the key column cannot be located,
    so a sheet is never merged unfiltered because its gating sheet produced nothing.
    """
    key_set = keys if isinstance(keys, (set, frozenset)) else set(keys)
    if not key_set:
        return []
    col = find_key_column(header, marker)
    if col < 0:
        return []
    return [list(row) for row in rows if col < len(row) and row[col].strip() in key_set]


@dataclass
class FilterOutcome:
    """Rows surviving the pipeline plus per-stage counts for logging."""
    rows: list[Row]
    extracted_keys: set[str] = field(default_factory=set)
    read: int = 0
    after_blank: int = 0
    after_value_filter: int | None = None  # None: stage disabled
    after_key_filter: int | None = None  # None: stage disabled


def apply_pipeline(
    rows: Iterable[Sequence[str]],
    header: Sequence[str],
    *,
    filter_column: int = -1,
    filter_values: Iterable[str] = (),
    extract: bool = False,
    gate_keys: Iterable[str] | None = None,
    marker: str = DEFAULT_KEY_MARKER,
    gate_on_extracted: bool = False,
) -> FilterOutcome:
    """Run the stages in their fixed order.

    gate_keys=None disables the key filter; any other value (even empty) enables it.
    Keys are extracted after the value filter and before the key filter;
    gate_on_extracted adds them to gate_keys so a key source can gate itself.
    """
    batch = [list(r) for r in rows]
    outcome = FilterOutcome(rows=[], read=len(batch))

    batch = filter_blank_rows(batch)
    outcome.after_blank = len(batch)

    values = tuple(filter_values)
    if filter_column >= 0 and values:
        batch = filter_by_column_values(batch, filter_column, values)
        outcome.after_value_filter = len(batch)

    if extract:
        outcome.extracted_keys = extract_keys(header, batch, marker)

    if gate_keys is not None:
        if extract and gate_on_extracted:
            gate_keys = set(gate_keys) | outcome.extracted_keys
        batch = filter_by_keys(header, batch, gate_keys, marker)
        outcome.after_key_filter = len(batch)

    outcome.rows = batch
    return outcome
