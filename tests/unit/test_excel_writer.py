from __future__ import annotations

from pathlib import Path

import pytest
from openpyxl import load_workbook

from excel_merge.excel.writer import SinkWriteError, WorkbookSink


def test_first_sheet_replaces_placeholder():
    with WorkbookSink() as sink:
        assert sink.sheet_names == []
        sink.create_sheet("Sales")
        assert sink.sheet_names == ["Sales"]
        assert sink.workbook.sheetnames == ["Sales"]


def test_sheet_named_like_placeholder():
    with WorkbookSink() as sink:
        sink.create_sheet("Sheet")
        sink.create_sheet("Other")
        assert sink.sheet_names == ["Sheet", "Other"]


def test_duplicate_sheet_rejected():
    with WorkbookSink() as sink:
        sink.create_sheet("A")
        with pytest.raises(SinkWriteError, match="already exists"):
            sink.create_sheet("A")


def test_invalid_title_rejected():
    with WorkbookSink() as sink:
        with pytest.raises(SinkWriteError):
            sink.create_sheet("bad/name")


def test_write_and_read_rows():
    with WorkbookSink() as sink:
        sink.create_sheet("S")
        sink.write_rows("S", 1, [["h1", "h2"], ["", ""]])
        sink.write_rows("S", 3, [["a", "", "c"], ["d"]])
        assert sink.read_rows("S") == [["h1", "h2"], [], ["a", "", "c"], ["d"]]
        assert len(sink.read_rows("S")) == 4


def test_write_to_unknown_sheet():
    with WorkbookSink() as sink:
        with pytest.raises(SinkWriteError, match="does not exist"):
            sink.write_rows("nope", 1, [["x"]])


def test_invalid_start_row():
    with WorkbookSink() as sink:
        sink.create_sheet("S")
        with pytest.raises(SinkWriteError, match="invalid start row"):
            sink.write_rows("S", 0, [["x"]])


def test_illegal_characters_raise_sink_error():
    with WorkbookSink() as sink:
        sink.create_sheet("S")
        with pytest.raises(SinkWriteError, match="row=1 col=1"):
            sink.write_rows("S", 1, [["bad\x01value"]])


def test_save_roundtrip(tmp_path: Path):
    out = tmp_path / "merged.xlsx"
    with WorkbookSink() as sink:
        sink.create_sheet("Шаблон")
        sink.write_rows("Шаблон", 1, [["Артикул*", "Бренд"], ["A-1", "Shuzzi"]])
        assert sink.save(out) == out
    wb = load_workbook(out)
    assert wb.sheetnames == ["Шаблон"]
    assert [list(r) for r in wb["Шаблон"].iter_rows(values_only=True)] == [
        ["Артикул*", "Бренд"],
        ["A-1", "Shuzzi"],
    ]


def test_save_empty_workbook_rejected(tmp_path: Path):
    with WorkbookSink() as sink:
        with pytest.raises(SinkWriteError, match="no sheets"):
            sink.save(tmp_path / "x.xlsx")


def test_closed_sink():
    sink = WorkbookSink()
    sink.close()
    with pytest.raises(SinkWriteError, match="closed"):
        sink.create_sheet("S")


def test_text_with_leading_equals_stays_text(tmp_path: Path):
    out = tmp_path / "out.xlsx"
    with WorkbookSink() as sink:
        sink.create_sheet("S")
        sink.write_rows("S", 1, [["note", "=see above"]])
        sink.save(out)
    wb = load_workbook(out)
    try:
        cell = wb["S"]["B1"]
        assert cell.data_type == "s"
        assert cell.value == "=see above"
    finally:
        wb.close()
