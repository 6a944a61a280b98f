"""Source adapters: raw files in, raw rows out."""

from .spreadsheet import Row, SpreadsheetError, read_first_sheet

__all__ = ["Row", "SpreadsheetError", "read_first_sheet"]
