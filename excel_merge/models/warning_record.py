from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""WarningRecord model for the warning log.

A WarningRecord describes one recoverable per-file problem (a file that could not
be opened, a missing sheet, unreadable data rows). The merge keeps going; the
record ends up in MergeResult.warning_records and, via WarningLogBuffer, in a
JSON Lines file.
"""

__all__ = [
    "FILE_OPEN_ERROR",
    "SHEET_NOT_FOUND",
    "SHEET_READ_ERROR",
    "WarningRecord",
]

FILE_OPEN_ERROR = "FILE_OPEN_ERROR"
SHEET_NOT_FOUND = "SHEET_NOT_FOUND"
SHEET_READ_ERROR = "SHEET_READ_ERROR"


@dataclass(frozen=True)
class WarningRecord:
    """Structured warning record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: workbook file name (no directory)
        sheet: sheet being merged when the problem occurred
        kind: classification in UPPER_SNAKE_CASE format
        message: human readable warning, identical to the MergeResult.warnings entry
    """
    timestamp: str
    file: str
    sheet: str
    kind: str
    message: str

    @staticmethod
    def create(file: str, sheet: str, kind: str, message: str) -> WarningRecord:
        """Create a new WarningRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return WarningRecord(
            timestamp=ts,
            file=file,
            sheet=sheet,
            kind=kind,
            message=message,
        )

    def to_json_line(self) -> str:
        """Serialize to a single JSON line (fixed key set)."""
        return json.dumps(asdict(self), ensure_ascii=False)
