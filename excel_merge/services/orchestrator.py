from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from ..excel.reader import SheetNotFoundError, SourceOpenError, WorkbookSource
from ..excel.writer import SinkWriteError, WorkbookSink
from ..models.config_models import MergeRequest, SheetMergeConfig
from ..models.merge_result import MergeContext, MergeResult, SheetStat
from ..models.warning_record import (
    FILE_OPEN_ERROR,
    SHEET_NOT_FOUND,
    SHEET_READ_ERROR,
    WarningRecord,
)
from .dependencies import SheetDependencyError, key_sources_for, resolve_sheet_order
from .progress import ProgressCallback, ProgressReporter
from .row_filter import apply_pipeline

logger = logging.getLogger(__name__)

"""Merge orchestration for the Excel workbook merger.

This module drives a merge across files and sheets:

1. validate the request (fatal errors raise MergeError before anything is written)
2. order enabled sheets so key-source sheets precede their dependents
3. for every sheet: copy the base header block, then read, filter and append the
   data rows of the base file and every additional file, in file order
4. aggregate statistics and warnings into a MergeResult

Per-file problems (unreadable file, missing sheet, unreadable rows) are recorded
as warnings and skipped. Problems with the base file or the output workbook abort
the run.
"""

__all__ = [
    "MergeError",
    "MergeOrchestrator",
]

SourceOpener = Callable[[str], WorkbookSource]
SinkFactory = Callable[[], WorkbookSink]


class MergeError(Exception):
    """Fatal merge error; no MergeResult is produced."""
    pass


@dataclass
class _RunState:
    """Mutable bookkeeping local to one merge() call."""
    total_steps: int
    step: int = 0
    warnings: list[str] = field(default_factory=list)
    records: list[WarningRecord] = field(default_factory=list)

    def warn(self, file_name: str, sheet: str, kind: str, message: str) -> None:
        self.warnings.append(message)
        self.records.append(WarningRecord.create(file=file_name, sheet=sheet, kind=kind, message=message))


def _validate_request(request: MergeRequest) -> None:
    if not request.base_file:
        raise MergeError("base file path is not specified")
    if not request.enabled_configs():
        raise MergeError("no enabled sheets to merge")


class MergeOrchestrator:
    """Merges sheets of several workbooks into one output workbook.

    The instance keeps no per-run state: extracted keys travel in a MergeContext
    created inside merge(), so repeated calls are independent.
    """

    def __init__(
        self,
        reporter: ProgressReporter | None = None,
        *,
        source_opener: SourceOpener = WorkbookSource.open,
        sink_factory: SinkFactory = WorkbookSink,
    ) -> None:
        self.reporter = reporter or ProgressReporter()
        self._open_source = source_opener
        self._new_sink = sink_factory

    def set_progress_callback(self, callback: ProgressCallback | None) -> None:
        """Register the single (current, total, message) callback."""
        self.reporter.set_progress_callback(callback)

    def merge(self, request: MergeRequest) -> MergeResult:
        """Merge all enabled sheets of request.

        Args:
            request: base file, additional files and per-sheet rules

        Returns:
            MergeResult; result.workbook holds the merged output, which the
            caller saves and closes

        Raises:
            MergeError: invalid request, dependency cycle, unreadable base file or
                base sheet, or a failure writing the output workbook
        """
        start_time = datetime.now(UTC)
        _validate_request(request)
        try:
            order = resolve_sheet_order(request)
        except SheetDependencyError as e:
            raise MergeError(str(e)) from e

        enabled = request.enabled_configs()
        files = request.all_files
        state = _RunState(total_steps=len(enabled) * len(files))

        logger.info(
            "merge start base_file=%s additional_files=%d sheets=%d order=%s",
            request.base_file,
            len(request.additional_files),
            len(enabled),
            order,
        )

        sink = self._new_sink()
        context = MergeContext()
        sheet_stats: dict[str, SheetStat] = {}
        total_rows = 0

        for sheet_name in order:
            cfg = enabled[sheet_name]
            logger.info("processing sheet=%s", sheet_name)
            try:
                rows_merged, keys = self._merge_sheet(sink, sheet_name, cfg, request, context, state)
            except (SinkWriteError, SourceOpenError, SheetNotFoundError) as e:
                sink.close()
                raise MergeError(f"failed to merge sheet '{sheet_name}': {e}") from e
            except Exception:
                sink.close()
                raise

            if keys is not None:
                context = context.with_keys(sheet_name, keys)
                logger.info("sheet=%s extracted_keys=%d", sheet_name, len(keys))

            sheet_stats[sheet_name] = SheetStat(rows_merged=rows_merged, files_count=len(files))
            total_rows += rows_merged

        end_time = datetime.now(UTC)
        result = MergeResult(
            processed_files=len(files),
            processed_sheets=len(sheet_stats),
            total_rows=total_rows,
            sheet_stats=sheet_stats,
            warnings=tuple(state.warnings),
            warning_records=tuple(state.records),
            start_time=start_time,
            end_time=end_time,
            elapsed_seconds=(end_time - start_time).total_seconds(),
            workbook=sink,
        )
        logger.info(
            "merge done processed_files=%d processed_sheets=%d total_rows=%d warnings=%d",
            result.processed_files,
            result.processed_sheets,
            result.total_rows,
            len(result.warnings),
        )
        return result

    def _read_base_rows(self, base_file: str, sheet_name: str) -> list[list[str]]:
        """All rows of the sheet in the base file; any failure here is fatal."""
        with self._open_source(base_file) as base:
            if not base.sheet_exists(sheet_name):
                raise SheetNotFoundError(sheet_name, base_file)
            return base.read_all_rows(sheet_name)

    def _merge_sheet(
        self,
        sink: WorkbookSink,
        sheet_name: str,
        cfg: SheetMergeConfig,
        request: MergeRequest,
        context: MergeContext,
        state: _RunState,
    ) -> tuple[int, set[str] | None]:
        """Merge one sheet from all files into sink.

        Returns:
            (rows written, extracted keys or None when the sheet is not a key source)
        """
        sink.create_sheet(sheet_name)

        try:
            base_rows = self._read_base_rows(request.base_file, sheet_name)
        except SheetNotFoundError:
            raise
        except SourceOpenError as e:
            raise SourceOpenError(f"cannot open base file: {e}") from e
        except Exception as e:
            raise SourceOpenError(f"cannot read base file: {e}") from e

        header_row = cfg.header_row
        header: list[str] = []
        if len(base_rows) >= header_row:
            # rows 1..header_row verbatim, decoration above the header line included
            sink.write_rows(sheet_name, 1, base_rows[:header_row])
            header = base_rows[header_row - 1]

        extract = request.is_key_source(sheet_name)
        # a key source gated on keys filters against its own keys as they accumulate
        self_gated = extract and cfg.use_extracted_keys
        gate_keys: frozenset[str] | None = None
        if cfg.use_extracted_keys:
            sources = key_sources_for(request, sheet_name)
            gate_keys = context.keys_for(sources)
            if not gate_keys and not self_gated:
                logger.warning(
                    "sheet=%s uses extracted keys but none are available (sources=%s); rows will be dropped",
                    sheet_name,
                    sources,
                )

        files = request.all_files
        cursor = header_row + 1
        rows_merged = 0
        keys: set[str] = set()

        for idx, file_path in enumerate(files, start=1):
            file_name = Path(file_path).name
            state.step += 1
            self.reporter.notify(
                state.step,
                state.total_steps,
                f"Processing {file_name}, sheet {sheet_name} ({idx}/{len(files)})",
            )

            try:
                source = self._open_source(file_path)
            except Exception as e:
                message = f"cannot open {file_name}: {e}"
                logger.warning("%s file=%s", message, file_path)
                state.warn(file_name, sheet_name, FILE_OPEN_ERROR, message)
                continue

            with source:
                if not source.sheet_exists(sheet_name):
                    message = f"sheet '{sheet_name}' not found in {file_name}"
                    logger.warning("%s file=%s", message, file_path)
                    state.warn(file_name, sheet_name, SHEET_NOT_FOUND, message)
                    continue

                try:
                    data_rows = source.read_data_rows(sheet_name, header_row)
                except Exception as e:
                    message = f"cannot read data from {file_name}: {e}"
                    logger.warning("%s file=%s", message, file_path)
                    state.warn(file_name, sheet_name, SHEET_READ_ERROR, message)
                    continue

                file_gate = (gate_keys | keys) if self_gated and gate_keys is not None else gate_keys
                outcome = apply_pipeline(
                    data_rows,
                    header,
                    filter_column=cfg.filter_column,
                    filter_values=cfg.filter_values,
                    extract=extract,
                    gate_keys=file_gate,
                    marker=request.key_marker,
                    gate_on_extracted=self_gated,
                )
                keys.update(outcome.extracted_keys)

                if outcome.after_value_filter is not None:
                    logger.info(
                        "value filter file=%s sheet=%s column=%d before=%d after=%d values=%s",
                        file_name,
                        sheet_name,
                        cfg.filter_column,
                        outcome.after_blank,
                        outcome.after_value_filter,
                        list(cfg.filter_values),
                    )
                if outcome.after_key_filter is not None:
                    before = (
                        outcome.after_value_filter
                        if outcome.after_value_filter is not None
                        else outcome.after_blank
                    )
                    logger.info(
                        "key filter file=%s sheet=%s before=%d after=%d keys=%d",
                        file_name,
                        sheet_name,
                        before,
                        outcome.after_key_filter,
                        len(file_gate or ()),
                    )

                if outcome.rows:
                    sink.write_rows(sheet_name, cursor, outcome.rows)
                    cursor += len(outcome.rows)
                    rows_merged += len(outcome.rows)

                logger.info(
                    "file processed file=%s sheet=%s rows_read=%d rows_added=%d",
                    file_name,
                    sheet_name,
                    outcome.read,
                    len(outcome.rows),
                )

        return rows_merged, (keys if extract else None)
