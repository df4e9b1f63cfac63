from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import replace
from pathlib import Path

from ..models.config_models import DEFAULT_TEMPLATE_SHEET, SheetMergeConfig
from ..services.analyzer import build_sheet_configs, find_column_in_first_rows
from .loader import MergeProfile

"""Built-in sheet rule presets.

The Ozon preset covers the marketplace upload template: the "Шаблон" sheet holds
the products (optionally filtered by brand) and is the key source, the two video
sheets keep only rows whose article belongs to a surviving product.
"""

__all__ = [
    "BRAND_COLUMN_MARKER",
    "OZON_HEADER_ROW",
    "OZON_VIDEO_SHEETS",
    "PRESETS",
    "apply_preset",
    "ozon_template",
]

logger = logging.getLogger(__name__)

OZON_HEADER_ROW = 4
OZON_VIDEO_SHEETS = ("Озон.Видео", "Озон.Видеообложка")
# Header of the brand column ("Бренд в одежде и обуви*")
BRAND_COLUMN_MARKER = "Бренд в одежде и обуви"


def ozon_template(brand_values: Iterable[str] = ()) -> dict[str, SheetMergeConfig]:
    """Sheet rules of the Ozon preset.

    The brand column position differs between template versions, so the
    template rule carries brand_values with filter_column=-1; apply_preset()
    resolves the column from the base file.
    """
    rules = {
        DEFAULT_TEMPLATE_SHEET: SheetMergeConfig(
            sheet_name=DEFAULT_TEMPLATE_SHEET,
            header_row=OZON_HEADER_ROW,
            filter_values=tuple(v for v in brand_values if v.strip()),
            extract_keys=True,
        ),
    }
    for name in OZON_VIDEO_SHEETS:
        rules[name] = SheetMergeConfig(
            sheet_name=name,
            header_row=OZON_HEADER_ROW,
            use_extracted_keys=True,
            depends_on=(DEFAULT_TEMPLATE_SHEET,),
        )
    return rules


PRESETS = {
    "ozon": ozon_template,
}


def _resolve_brand_column(rule: SheetMergeConfig, base_file: str | Path) -> SheetMergeConfig:
    column = find_column_in_first_rows(base_file, rule.sheet_name, rule.header_row, BRAND_COLUMN_MARKER)
    if column < 0:
        logger.warning(
            "brand column '%s*' not found in sheet '%s', brand filter disabled",
            BRAND_COLUMN_MARKER,
            rule.sheet_name,
        )
        return replace(rule, filter_column=-1, filter_values=())
    logger.info(
        "brand column detected sheet=%s column_index=%d filter_values=%s",
        rule.sheet_name,
        column,
        list(rule.filter_values),
    )
    return replace(rule, filter_column=column)


def apply_preset(
    profile: MergeProfile,
    preset: Mapping[str, SheetMergeConfig],
    base_file: str | Path | None = None,
) -> MergeProfile:
    """Return a profile whose sheet rules follow preset.

    Sheets named by the preset take its rules (keeping their stored headers),
    every other sheet is disabled. A profile without sheet rules gets one rule per
    sheet of the base file first.
    """
    base = base_file or profile.base_file
    sheets = profile.sheets or tuple(build_sheet_configs(base))

    updated: list[SheetMergeConfig] = []
    for sheet in sheets:
        rule = preset.get(sheet.sheet_name)
        if rule is None:
            updated.append(replace(sheet, enabled=False))
            continue
        rule = replace(rule, headers=sheet.headers)
        if rule.sheet_name == profile.template_sheet and rule.filter_values:
            rule = _resolve_brand_column(rule, base)
        logger.debug(
            "preset rule applied sheet=%s enabled=%s header_row=%d use_extracted_keys=%s",
            rule.sheet_name,
            rule.enabled,
            rule.header_row,
            rule.use_extracted_keys,
        )
        updated.append(rule)
    return replace(profile, sheets=tuple(updated))
