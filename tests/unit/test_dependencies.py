from __future__ import annotations

import pytest

from excel_merge.models import MergeRequest, SheetMergeConfig
from excel_merge.services.dependencies import (
    SheetDependencyError,
    build_dependency_graph,
    key_sources_for,
    resolve_sheet_order,
)


def _request(*configs: SheetMergeConfig, **kwargs) -> MergeRequest:
    return MergeRequest.from_configs("base.xlsx", [], configs, **kwargs)


def test_independent_sheets_keep_mapping_order():
    req = _request(SheetMergeConfig("C"), SheetMergeConfig("A"), SheetMergeConfig("B"))
    assert resolve_sheet_order(req) == ["C", "A", "B"]


def test_template_sheet_precedes_dependents():
    req = _request(
        SheetMergeConfig("Озон.Видео", use_extracted_keys=True),
        SheetMergeConfig("Other"),
        SheetMergeConfig("Шаблон"),
    )
    order = resolve_sheet_order(req)
    assert order.index("Шаблон") < order.index("Озон.Видео")
    assert order == ["Other", "Шаблон", "Озон.Видео"]


def test_disabled_sheets_are_excluded():
    req = _request(SheetMergeConfig("A", enabled=False), SheetMergeConfig("B"))
    assert resolve_sheet_order(req) == ["B"]


def test_explicit_depends_on():
    req = _request(SheetMergeConfig("A", depends_on=["B"]), SheetMergeConfig("B"))
    assert resolve_sheet_order(req) == ["B", "A"]


def test_depends_on_disabled_or_unknown_is_ignored():
    req = _request(
        SheetMergeConfig("A", depends_on=["Missing", "B"]),
        SheetMergeConfig("B", enabled=False),
    )
    assert resolve_sheet_order(req) == ["A"]
    assert build_dependency_graph(req) == {"A": set()}


def test_cycle_raises():
    req = _request(SheetMergeConfig("A", depends_on=["B"]), SheetMergeConfig("B", depends_on=["A"]))
    with pytest.raises(SheetDependencyError, match="cycle"):
        resolve_sheet_order(req)


def test_custom_key_source_with_extract_keys():
    req = _request(
        SheetMergeConfig("Videos", use_extracted_keys=True),
        SheetMergeConfig("Products", extract_keys=True),
        template_sheet=None,
    )
    assert resolve_sheet_order(req) == ["Products", "Videos"]
    assert key_sources_for(req, "Videos") == ["Products"]


def test_key_sources_prefer_explicit_dependencies():
    req = _request(
        SheetMergeConfig("P1", extract_keys=True),
        SheetMergeConfig("P2", extract_keys=True),
        SheetMergeConfig("V", use_extracted_keys=True, depends_on=["P2"]),
    )
    assert key_sources_for(req, "V") == ["P2"]


def test_key_sources_default_to_all_enabled_sources():
    req = _request(
        SheetMergeConfig("P1", extract_keys=True),
        SheetMergeConfig("P2", extract_keys=True, enabled=False),
        SheetMergeConfig("Шаблон"),
        SheetMergeConfig("V", use_extracted_keys=True),
    )
    assert key_sources_for(req, "V") == ["P1", "Шаблон"]


def test_key_sources_empty_for_ungated_sheet():
    req = _request(SheetMergeConfig("Шаблон"), SheetMergeConfig("V"))
    assert key_sources_for(req, "V") == []
    assert key_sources_for(req, "unknown") == []


def test_self_gating_key_source_has_no_self_edge():
    req = _request(SheetMergeConfig("Шаблон", use_extracted_keys=True, depends_on=["Шаблон"]))
    assert resolve_sheet_order(req) == ["Шаблон"]
    assert key_sources_for(req, "Шаблон") == []
