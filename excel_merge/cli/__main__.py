from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from ..config.loader import PROFILE_ENV_VAR, ConfigError, MergeProfile, load_profile
from ..config.presets import PRESETS, apply_preset
from ..excel.reader import SheetNotFoundError, SourceOpenError, WorkbookSource
from ..excel.writer import SinkWriteError
from ..logging.init import log_summary, set_debug, setup_logging
from ..logging.warning_log import WarningLogBuffer
from ..services.analyzer import AnalyzerError
from ..services.orchestrator import MergeError, MergeOrchestrator
from ..services.progress import ProgressTracker
from ..services.summary import render_sheet_lines, render_summary_line

"""CLI entrypoint.

Flow:
- Load .env, then the merge profile (--profile or $EXCEL_MERGE_PROFILE)
- Apply the profile's preset (e.g. ozon) against the base file
- Merge, save the output workbook, print SUMMARY and flush the warning log

--inspect prints the base file's sheets and a few rows of each enabled sheet
instead of merging.
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1


def _load_env_file(path: Path, override: bool = False) -> None:
    """Load .env using python-dotenv (existing variables win unless override)."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="excel-merge", description="Merge sheets of several Excel workbooks into one")
    p.add_argument("--profile", type=Path, help=f"Merge profile YAML (default: ${PROFILE_ENV_VAR})")
    p.add_argument("--output", type=Path, help="Output workbook path (default: profile output_file)")
    p.add_argument("--files", nargs="*", default=[], help="Additional workbooks appended to the profile's list")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect", action="store_true", help="Print sheets and sample rows of the base file then exit")
    return p.parse_args(argv)


def _default_output(profile: MergeProfile) -> Path:
    base = Path(profile.base_file)
    return Path.cwd() / f"{base.stem}_merged.xlsx"


def _inspect(profile: MergeProfile) -> int:
    try:
        source = WorkbookSource.open(profile.base_file)
    except SourceOpenError as e:
        print(f"inspect: {e}")
        return EXIT_FATAL
    rules = {s.sheet_name: s for s in profile.sheets}
    with source:
        print(f"FILE: {source.name}")
        for sheet in source.sheet_names:
            rule = rules.get(sheet)
            if rule is None or not rule.enabled:
                print(f"  SHEET: {sheet} (disabled)")
                continue
            try:
                rows = source.read_all_rows(sheet)
            except Exception as e:  # pragma: no cover
                print(f"  SHEET: {sheet} error={e}")
                continue
            header = rows[rule.header_row - 1] if len(rows) >= rule.header_row else []
            print(f"  SHEET: {sheet} header_row={rule.header_row} rows={len(rows)}")
            print(f"    header={header}")
            for row in rows[rule.header_row : rule.header_row + profile.settings.preview_rows]:
                print(f"    row={row}")
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # None only: an explicit [] must not fall back to sys.argv (pytest flags)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    _load_env_file(Path(".env"))

    if args.debug:
        set_debug(True)
        logger.debug("debug mode enabled")

    profile_path = args.profile or os.getenv(PROFILE_ENV_VAR)
    if not profile_path:
        logger.error(f"config: no profile given (use --profile or set {PROFILE_ENV_VAR})")
        return EXIT_FATAL
    try:
        profile = load_profile(Path(profile_path))
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if profile.preset:
        try:
            profile = apply_preset(profile, PRESETS[profile.preset](profile.brand_values))
        except (SourceOpenError, SheetNotFoundError, AnalyzerError) as e:
            logger.error(f"preset {profile.preset}: {e}")
            return EXIT_FATAL

    if args.inspect:
        return _inspect(profile)

    request = profile.to_request([str(f) for f in args.files])
    output = args.output or (Path(profile.output_file) if profile.output_file else _default_output(profile))
    logger.info(f"Merging {len(request.all_files)} files into {output}")

    orchestrator = MergeOrchestrator()
    with ProgressTracker(description="Merging") as tracker:
        unsubscribe = orchestrator.reporter.subscribe(tracker.on_update)
        try:
            result = orchestrator.merge(request)
        except MergeError as e:
            logger.error(f"merge: {e}")
            return EXIT_FATAL
        finally:
            unsubscribe()

    workbook = result.workbook
    if workbook is None:
        logger.error("merge: no output workbook produced")
        return EXIT_FATAL
    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        saved = workbook.save(output)
    except (OSError, SinkWriteError) as e:
        logger.error(f"save: {e}")
        return EXIT_FATAL
    finally:
        workbook.close()
    logger.info(f"Output saved: {saved}")

    buffer = WarningLogBuffer()
    buffer.extend(result.warning_records)
    log_path = buffer.flush()
    if log_path is not None:
        logger.info(f"warnings written to {log_path}")
    if profile.settings.show_warnings:
        for w in result.warnings:
            logger.warning(w)

    # log_summary adds the "SUMMARY " label itself
    log_summary(render_summary_line(result).removeprefix("SUMMARY "))
    for line in render_sheet_lines(result):
        logger.info(line)

    if result.has_warnings:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
