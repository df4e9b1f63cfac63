"""Excel workbook merger.

Merges sheets of several workbooks sharing a layout into one output workbook,
with per-sheet header rows, value filters and key-based cross-sheet filtering.
"""

__version__ = "0.1.0"
