from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    DEFAULT_KEY_MARKER,
    DEFAULT_TEMPLATE_SHEET,
    MergeRequest,
    SheetMergeConfig,
)

"""Merge profile loader.

Responsibilities:
- Load a YAML merge profile (sheet rules plus the files to merge)
- Validate it against the bundled JSON schema (profile_schema.json)
- Resolve relative file paths against the profile's directory
- Save a profile back to YAML with a fresh updated_at stamp
"""

__all__ = [
    "PROFILE_ENV_VAR",
    "PROFILE_VERSION",
    "SCHEMA_PATH",
    "ConfigError",
    "MergeProfile",
    "ProfileSettings",
    "load_profile",
    "profile_to_dict",
    "save_profile",
]

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).with_name("profile_schema.json")
PROFILE_VERSION = "1.0"
# Default profile path when --profile is not given
PROFILE_ENV_VAR = "EXCEL_MERGE_PROFILE"

_SHEET_FIELDS = (
    "sheet_name",
    "enabled",
    "header_row",
    "filter_column",
    "filter_values",
    "use_extracted_keys",
    "extract_keys",
    "depends_on",
    "headers",
)


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class ProfileSettings:
    skip_empty_rows: bool = True
    show_warnings: bool = True
    preview_rows: int = 5


@dataclass(frozen=True)
class MergeProfile:
    profile_name: str
    base_file: str
    sheets: tuple[SheetMergeConfig, ...]
    additional_files: tuple[str, ...] = ()
    output_file: str | None = None
    template_sheet: str | None = DEFAULT_TEMPLATE_SHEET
    key_marker: str = DEFAULT_KEY_MARKER
    preset: str | None = None
    brand_values: tuple[str, ...] = ()
    settings: ProfileSettings = field(default_factory=ProfileSettings)
    version: str = PROFILE_VERSION
    created_at: str | None = None
    updated_at: str | None = None

    def to_request(self, extra_files: tuple[str, ...] | list[str] = ()) -> MergeRequest:
        """MergeRequest for this profile; extra_files are merged after additional_files."""
        return MergeRequest.from_configs(
            self.base_file,
            [*self.additional_files, *extra_files],
            self.sheets,
            template_sheet=self.template_sheet,
            key_marker=self.key_marker,
        )


def _now_iso() -> str:
    return datetime.now(UTC).isoformat(timespec="seconds").replace("+00:00", "Z")


def _validate_profile_schema(data: dict[str, Any]) -> None:
    """Validate profile data against the bundled JSON schema.

    Raises:
        ConfigError: schema file missing or unreadable, or the data violates it
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"profile schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        where = "/".join(str(p) for p in e.absolute_path) or "<root>"
        raise ConfigError(f"profile validation failed at {where}: {e.message}") from e


def _resolve(base_dir: Path, p: str) -> str:
    path = Path(p).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return str(path)


def _stamp_to_str(value: Any) -> Any:
    # unquoted YAML timestamps load as datetime/date
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def load_profile(path: Path | str) -> MergeProfile:
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"profile file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("profile must be a YAML mapping")

    for key in ("created_at", "updated_at"):
        if key in data:
            data[key] = _stamp_to_str(data[key])

    _validate_profile_schema(data)

    base_dir = path.resolve().parent
    try:
        sheets = tuple(SheetMergeConfig(**s) for s in data["sheets"])
    except ValueError as e:
        raise ConfigError(f"invalid sheet rule: {e}") from e

    names = [s.sheet_name for s in sheets]
    dupes = sorted({n for n in names if names.count(n) > 1})
    if dupes:
        raise ConfigError(f"duplicate sheet rules: {', '.join(dupes)}")

    output_file = data.get("output_file")
    profile = MergeProfile(
        profile_name=data["profile_name"],
        base_file=_resolve(base_dir, data["base_file"]),
        sheets=sheets,
        additional_files=tuple(_resolve(base_dir, f) for f in data.get("additional_files", [])),
        output_file=_resolve(base_dir, output_file) if output_file else None,
        template_sheet=data.get("template_sheet", DEFAULT_TEMPLATE_SHEET),
        key_marker=data.get("key_marker", DEFAULT_KEY_MARKER),
        preset=data.get("preset"),
        brand_values=tuple(data.get("brand_values", [])),
        settings=ProfileSettings(**data.get("settings", {})),
        version=data.get("version", PROFILE_VERSION),
        created_at=data.get("created_at"),
        updated_at=data.get("updated_at"),
    )
    logger.debug("profile loaded name=%s sheets=%d path=%s", profile.profile_name, len(sheets), path)
    return profile


def profile_to_dict(profile: MergeProfile) -> dict[str, Any]:
    """Plain-data form of a profile, in the key layout load_profile reads."""
    sheets = []
    for s in profile.sheets:
        item: dict[str, Any] = {}
        for name in _SHEET_FIELDS:
            value = getattr(s, name)
            item[name] = list(value) if isinstance(value, tuple) else value
        sheets.append(item)
    data: dict[str, Any] = {
        "version": profile.version,
        "profile_name": profile.profile_name,
        "created_at": profile.created_at,
        "updated_at": profile.updated_at,
        "base_file": profile.base_file,
        "additional_files": list(profile.additional_files),
        "output_file": profile.output_file,
        "template_sheet": profile.template_sheet,
        "key_marker": profile.key_marker,
        "preset": profile.preset,
        "brand_values": list(profile.brand_values),
        "sheets": sheets,
        "settings": {
            "skip_empty_rows": profile.settings.skip_empty_rows,
            "show_warnings": profile.settings.show_warnings,
            "preview_rows": profile.settings.preview_rows,
        },
    }
    return data


def save_profile(profile: MergeProfile, path: Path | str) -> MergeProfile:
    """Write the profile as YAML; returns the profile with updated timestamps."""
    path = Path(path)
    now = _now_iso()
    profile = replace(profile, created_at=profile.created_at or now, updated_at=now)
    data = profile_to_dict(profile)
    _validate_profile_schema(data)
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        path.write_text(
            yaml.safe_dump(data, allow_unicode=True, sort_keys=False),
            encoding="utf-8",
        )
    except OSError as e:
        raise ConfigError(f"cannot write profile {path}: {e}") from e
    logger.info("profile saved name=%s path=%s", profile.profile_name, path)
    return profile
