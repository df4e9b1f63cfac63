from __future__ import annotations

import json
from datetime import UTC, datetime

import pytest

from excel_merge.models import MergeContext, MergeResult, ProgressUpdate, SheetStat, WarningRecord


def _result(**overrides) -> MergeResult:
    now = datetime(2024, 1, 1, tzinfo=UTC)
    values = dict(
        processed_files=3,
        processed_sheets=1,
        total_rows=16,
        sheet_stats={"Sales": SheetStat(rows_merged=16, files_count=3)},
        warnings=[],
        start_time=now,
        end_time=now,
        elapsed_seconds=0.0,
    )
    values.update(overrides)
    return MergeResult(**values)


class TestProgressUpdate:
    def test_fraction(self):
        assert ProgressUpdate(1, 4, "m").fraction == 0.25
        assert ProgressUpdate(4, 4, "m").fraction == 1.0

    def test_fraction_zero_total(self):
        assert ProgressUpdate(0, 0, "m").fraction == 0.0


class TestMergeContext:
    def test_with_keys_returns_new_context(self):
        ctx = MergeContext()
        ctx2 = ctx.with_keys("Шаблон", {"A-1", "A-2"})
        assert ctx.keys_by_sheet == {}
        assert ctx2.keys_for(["Шаблон"]) == frozenset({"A-1", "A-2"})

    def test_keys_for_unions_and_ignores_missing(self):
        ctx = MergeContext().with_keys("T1", {"a"}).with_keys("T2", {"b"})
        assert ctx.keys_for(["T1", "T2", "missing"]) == {"a", "b"}
        assert ctx.keys_for([]) == frozenset()

    def test_mapping_is_read_only(self):
        ctx = MergeContext({"T": {"a"}})
        with pytest.raises(TypeError):
            ctx.keys_by_sheet["X"] = frozenset()  # type: ignore[index]


class TestMergeResult:
    def test_immutable_collections(self):
        result = _result(warnings=["w1"])
        assert result.warnings == ("w1",)
        assert result.has_warnings
        with pytest.raises(TypeError):
            result.sheet_stats["Other"] = SheetStat(0, 0)  # type: ignore[index]

    def test_no_warnings(self):
        assert not _result().has_warnings

    def test_workbook_not_part_of_equality(self):
        assert _result(workbook=object()) == _result(workbook=None)


class TestWarningRecord:
    def test_json_line_has_fixed_keys(self):
        rec = WarningRecord.create("b.xlsx", "Sales", "SHEET_NOT_FOUND", "sheet 'Sales' not found in b.xlsx")
        data = json.loads(rec.to_json_line())
        assert set(data) == {"timestamp", "file", "sheet", "kind", "message"}
        assert data["timestamp"].endswith("Z")
        assert data["kind"] == "SHEET_NOT_FOUND"

    def test_non_ascii_kept_readable(self):
        rec = WarningRecord.create("файл.xlsx", "Шаблон", "FILE_OPEN_ERROR", "нет файла")
        assert "Шаблон" in rec.to_json_line()
