# Shared pytest fixtures
from __future__ import annotations

import tempfile
from collections.abc import Callable
from pathlib import Path

import pandas as pd
import pytest

from excel_merge.logging.init import reset_logging

Rows = list[list[object]]


def write_workbook(path: Path, sheets: dict[str, Rows]) -> Path:
    """Create a real .xlsx file; every row is written as-is (no pandas header/index)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        for sheet_name, rows in sheets.items():
            df = pd.DataFrame(rows)
            df.to_excel(writer, sheet_name=sheet_name, header=False, index=False)
    return path


@pytest.fixture(autouse=True)
def _clean_logging():
    # CLI tests configure the "excel_merge" logger with propagate=False
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        # set then delete so that a value loaded from .env is undone on teardown
        monkeypatch.setenv("EXCEL_MERGE_PROFILE", "")
        monkeypatch.delenv("EXCEL_MERGE_PROFILE")
        yield p


@pytest.fixture()
def make_workbook(temp_workdir: Path) -> Callable[[str, dict[str, Rows]], Path]:
    """Factory writing workbooks into <workdir>/data."""
    def _make(name: str, sheets: dict[str, Rows]) -> Path:
        return write_workbook(temp_workdir / "data" / name, sheets)
    return _make


def sales_sheet(region_rows: Rows) -> Rows:
    """Sales layout: 4 decoration rows, header on row 5, then data."""
    return [
        ["Quarterly sales", ""],
        ["generated", "2024-01-01"],
        ["", ""],
        ["confidential", ""],
        ["Date", "Region", "Amount"],
        *region_rows,
    ]


@pytest.fixture()
def sales_files(make_workbook) -> tuple[Path, list[Path]]:
    """Base file with 10 data rows plus two additional files with 3 data rows each."""
    base = make_workbook(
        "sales_base.xlsx",
        {"Sales": sales_sheet([[f"2024-01-{d:02d}", "North", d * 10] for d in range(1, 11)])},
    )
    extra1 = make_workbook(
        "sales_b.xlsx",
        {"Sales": sales_sheet([["2024-02-01", "South", 5], ["2024-02-02", "East", 6], ["2024-02-03", "West", 7]])},
    )
    extra2 = make_workbook(
        "sales_c.xlsx",
        {"Sales": sales_sheet([["2024-03-01", "North", 1], ["2024-03-02", "North", 2], ["2024-03-03", "South", 3]])},
    )
    return base, [extra1, extra2]


TEMPLATE_HEADER = ["Артикул*", "Название", "Бренд в одежде и обуви*"]
VIDEO_HEADER = ["Артикул*", "Ссылка на видео"]


def ozon_sheets(products: Rows, videos: Rows, covers: Rows | None = None) -> dict[str, Rows]:
    """Ozon layout: 3 decoration rows, header on row 4."""
    deco = [["Шаблон для загрузки", "", ""], ["подсказка", "", ""], ["*", "*", "*"]]
    return {
        "Шаблон": [*deco, TEMPLATE_HEADER, *products],
        "Озон.Видео": [*deco, VIDEO_HEADER, *videos],
        "Озон.Видеообложка": [*deco, VIDEO_HEADER, *(covers if covers is not None else videos)],
    }


@pytest.fixture()
def ozon_layout() -> Callable[..., dict[str, Rows]]:
    return ozon_sheets


@pytest.fixture()
def sales_layout() -> Callable[[Rows], Rows]:
    return sales_sheet
