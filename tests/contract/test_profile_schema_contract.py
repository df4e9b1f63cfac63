from __future__ import annotations

import json

import jsonschema
import pytest
from jsonschema.exceptions import ValidationError

from excel_merge.config.loader import SCHEMA_PATH

"""Profile schema contract (profile_schema.json)."""


@pytest.fixture(scope="module")
def schema() -> dict:
    return json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))


def test_schema_is_valid_draft(schema):
    jsonschema.Draft202012Validator.check_schema(schema)


def test_full_example_validates(schema):
    profile = {
        "version": "1.0",
        "profile_name": "ozon",
        "created_at": "2024-01-01T00:00:00Z",
        "updated_at": None,
        "base_file": "base.xlsx",
        "additional_files": ["b.xlsx"],
        "output_file": "merged.xlsx",
        "template_sheet": "Шаблон",
        "key_marker": "артикул",
        "preset": "ozon",
        "brand_values": ["Shuzzi"],
        "sheets": [
            {
                "sheet_name": "Шаблон",
                "enabled": True,
                "header_row": 4,
                "filter_column": 2,
                "filter_values": ["Shuzzi"],
                "use_extracted_keys": False,
                "extract_keys": True,
                "depends_on": [],
                "headers": ["Артикул*"],
            }
        ],
        "settings": {"skip_empty_rows": True, "show_warnings": True, "preview_rows": 5},
    }
    jsonschema.validate(profile, schema)


@pytest.mark.parametrize(
    "profile",
    [
        {"base_file": "b.xlsx", "sheets": []},
        {"profile_name": "", "base_file": "b.xlsx", "sheets": []},
        {"profile_name": "p", "base_file": "b.xlsx", "sheets": [{"sheet_name": "S", "header_row": True}]},
        {"profile_name": "p", "base_file": "b.xlsx", "sheets": [{"sheet_name": "S", "filter_column": -2}]},
        {"profile_name": "p", "base_file": "b.xlsx", "sheets": [], "settings": {"preview_rows": -1}},
    ],
)
def test_invalid_profiles_rejected(schema, profile):
    with pytest.raises(ValidationError):
        jsonschema.validate(profile, schema)
