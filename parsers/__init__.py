"""
Spreadsheet parsers module.
"""

from parsers.sheet_parser import (
    parse_csv,
    parse_sheet_file,
    smart_parse_int,
    ParsedSheet,
)

__all__ = [
    "parse_csv",
    "parse_sheet_file",
    "smart_parse_int",
    "ParsedSheet",
]
