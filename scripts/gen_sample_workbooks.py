#!/usr/bin/env python3
"""Sample workbook generation for manual and performance runs.

Generates a base workbook plus N additional workbooks in the Ozon upload layout:
- Sheet "Шаблон": rows 1..3 decoration, row 4 header ("Артикул*", "Бренд в одежде и обуви*", ...),
  row 5+ products
- Sheets "Озон.Видео" / "Озон.Видеообложка": row 4 header with "Артикул*", row 5+ video rows
  referencing a subset of the product articles (plus some unknown articles)

A matching merge profile (YAML) is written next to the workbooks so the result can be
merged right away with `excel-merge --profile <dir>/profile.yml`.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd
import yaml

HEADER_ROW = 4
TEMPLATE_SHEET = "Шаблон"
VIDEO_SHEETS = ("Озон.Видео", "Озон.Видеообложка")
BRANDS = ["Shuzzi", "Nordwind", "Lumo", "Kasta", "Orbit"]
CATEGORIES = ["Обувь", "Одежда", "Аксессуары", "Сумки"]


def _decoration(width: int, title: str) -> list[list[Any]]:
    """Rows above the header line (title, hint, required-marker row)."""
    return [
        [title] + [""] * (width - 1),
        ["Заполните строки начиная с 5-й"] + [""] * (width - 1),
        ["*"] * width,
    ]


def generate_products(rows: int, file_idx: int, rng: np.random.Generator) -> pd.DataFrame:
    """Product rows of the template sheet; articles are unique per file."""
    return pd.DataFrame(
        {
            "Артикул*": [f"ART-{file_idx:02d}-{j:06d}" for j in range(rows)],
            "Название товара": [f"Товар {file_idx}-{j}" for j in range(rows)],
            "Бренд в одежде и обуви*": rng.choice(BRANDS, rows).tolist(),
            "Категория": rng.choice(CATEGORIES, rows).tolist(),
            "Цена, руб.*": np.round(rng.uniform(199, 19999, rows), 0).astype(int).tolist(),
            "Остаток": rng.integers(0, 500, rows).tolist(),
        }
    )


def generate_videos(articles: list[str], share: float, rng: np.random.Generator) -> pd.DataFrame:
    """Video rows for a random share of articles, plus a few rows with unknown articles."""
    picked = rng.choice(articles, max(1, int(len(articles) * share)), replace=False).tolist()
    orphans = [f"UNKNOWN-{j:04d}" for j in range(max(1, len(picked) // 10))]
    refs = picked + orphans
    return pd.DataFrame(
        {
            "Артикул*": refs,
            "Озон.Видео: название": [f"Видео {a}" for a in refs],
            "Озон.Видео: ссылка": [f"https://example.invalid/video/{a}.mp4" for a in refs],
        }
    )


def _sheet_frame(df: pd.DataFrame, title: str) -> pd.DataFrame:
    width = len(df.columns)
    sheet_data = _decoration(width, title)
    sheet_data.append(df.columns.tolist())
    sheet_data.extend(df.to_numpy().tolist())
    return pd.DataFrame(sheet_data)


def create_workbook(output_path: Path, rows: int, file_idx: int, seed: int) -> None:
    """Write one workbook with the template sheet and both video sheets."""
    rng = np.random.default_rng(seed + file_idx)
    products = generate_products(rows, file_idx, rng)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
        _sheet_frame(products, "Шаблон для загрузки товаров").to_excel(
            writer, sheet_name=TEMPLATE_SHEET, header=False, index=False
        )
        articles = products["Артикул*"].tolist()
        for sheet in VIDEO_SHEETS:
            _sheet_frame(generate_videos(articles, 0.3, rng), sheet).to_excel(
                writer, sheet_name=sheet, header=False, index=False
            )
    print(f"Created workbook: {output_path} ({rows} products)")


def write_profile(directory: Path, base: Path, additional: list[Path], brands: list[str]) -> Path:
    profile = {
        "version": "1.0",
        "profile_name": "ozon-sample",
        "base_file": base.name,
        "additional_files": [p.name for p in additional],
        "output_file": "merged.xlsx",
        "preset": "ozon",
        "brand_values": brands,
        "sheets": [
            {"sheet_name": TEMPLATE_SHEET},
            *({"sheet_name": s} for s in VIDEO_SHEETS),
        ],
    }
    path = directory / "profile.yml"
    path.write_text(yaml.safe_dump(profile, allow_unicode=True, sort_keys=False), encoding="utf-8")
    print(f"Created profile: {path}")
    return path


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Generate sample Ozon-layout workbooks and a merge profile",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # base + 2 additional workbooks with 1000 products each
  %(prog)s samples/

  # larger run for timing
  %(prog)s perf/ --rows 50000 --files 5 --brands Shuzzi Lumo
        """,
    )
    parser.add_argument("output_dir", type=Path, help="Directory for the generated files")
    parser.add_argument("--rows", type=int, default=1000, help="Products per workbook (default: 1000)")
    parser.add_argument("--files", type=int, default=2, help="Additional workbooks (default: 2)")
    parser.add_argument("--brands", nargs="*", default=["Shuzzi"], help="Brand filter written to the profile")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    args = parser.parse_args()

    if args.rows <= 0:
        print("Error: --rows must be positive", file=sys.stderr)
        return 1
    if args.files < 0:
        print("Error: --files must not be negative", file=sys.stderr)
        return 1

    try:
        base = args.output_dir / "base.xlsx"
        create_workbook(base, args.rows, 0, args.seed)
        additional = []
        for i in range(1, args.files + 1):
            path = args.output_dir / f"extra_{i:02d}.xlsx"
            create_workbook(path, args.rows, i, args.seed)
            additional.append(path)
        write_profile(args.output_dir, base, additional, args.brands)
    except OSError as e:
        print(f"\nError generating workbooks: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
