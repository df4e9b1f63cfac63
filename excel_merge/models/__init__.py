"""Domain models for the Excel workbook merger.

This package contains the configuration, result and progress value types used
throughout the application.
"""

from .config_models import DEFAULT_KEY_MARKER, DEFAULT_TEMPLATE_SHEET, MergeRequest, SheetMergeConfig
from .merge_result import MergeContext, MergeResult, ProgressUpdate, SheetStat
from .warning_record import WarningRecord

__all__ = [
    # Configuration models
    "DEFAULT_KEY_MARKER",
    "DEFAULT_TEMPLATE_SHEET",
    "MergeRequest",
    "SheetMergeConfig",
    # Result models
    "MergeContext",
    "MergeResult",
    "ProgressUpdate",
    "SheetStat",
    "WarningRecord",
]
