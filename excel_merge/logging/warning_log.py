from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from ..models.warning_record import WarningRecord

"""Warning log buffering.

- JSON Lines with a fixed key set (see WarningRecord)
- one file per run: logs/warnings-YYYYMMDD-HHMMSS.log (UTC), created on first flush
- records are buffered in memory and appended in one go on flush()
"""

__all__ = [
    "WarningLogBuffer",
    "WarningRecord",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class WarningLogBuffer:
    """In-memory buffer for warning records. Flush writes JSON Lines.

    Not thread-safe; the CLI fills and flushes it from one thread.
    """
    def __init__(self, logs_dir: Path | None = None) -> None:
        self._records: list[WarningRecord] = []
        self._file_path: Path | None = None
        self._logs_dir = logs_dir or LOGS_DIR

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"warnings-{stamp}.log"
        return self._file_path

    def append(self, record: WarningRecord) -> None:
        self._records.append(record)

    def extend(self, records: Iterable[WarningRecord]) -> None:
        self._records.extend(records)

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def flush(self) -> Path | None:
        """Append buffered records; returns the log path, or None if nothing was buffered."""
        if not self._records:
            return None
        fp = self.file_path
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
