from __future__ import annotations

from pathlib import Path

from excel_merge.cli.__main__ import main as cli_main
from excel_merge.logging.init import reset_logging

"""Exit code contract: 0 clean run, 2 merged with warnings, 1 fatal."""


def _profile(temp_workdir: Path, make_workbook, extra: str = "") -> Path:
    make_workbook("base.xlsx", {"S": [["id", "x"], ["1", "a"]]})
    p = temp_workdir / "config" / "p.yml"
    p.write_text(
        "profile_name: p\nbase_file: ../data/base.xlsx\noutput_file: ../out.xlsx\n"
        f"additional_files: [{extra}]\nsheets:\n  - sheet_name: S\n",
        encoding="utf-8",
    )
    return p


def test_exit_code_fatal_startup(temp_workdir: Path, capsys):
    reset_logging()
    code = cli_main([])
    assert code == 1
    assert "ERROR config:" in capsys.readouterr().out


def test_exit_code_fatal_base_sheet_missing(temp_workdir: Path, make_workbook, capsys):
    reset_logging()
    p = _profile(temp_workdir, make_workbook)
    p.write_text(p.read_text(encoding="utf-8").replace("sheet_name: S", "sheet_name: Missing"), encoding="utf-8")
    assert cli_main(["--profile", str(p)]) == 1
    assert "ERROR merge: failed to merge sheet 'Missing'" in capsys.readouterr().out


def test_exit_code_all_success(temp_workdir: Path, make_workbook, capsys):
    reset_logging()
    assert cli_main(["--profile", str(_profile(temp_workdir, make_workbook))]) == 0


def test_exit_code_partial(temp_workdir: Path, make_workbook, capsys):
    reset_logging()
    p = _profile(temp_workdir, make_workbook, extra="../data/absent.xlsx")
    assert cli_main(["--profile", str(p)]) == 2
