"""
Bulk menu import: parse a CSV, JSON or Excel menu, preview row-level problems,
then create menu items for the rows that passed.
"""

from menu_import.models import ImportCommitResult, MenuImportResult, MenuImportRow, RowFilter
from menu_import.parser import MenuFileError, UnsupportedFormatError, parse_menu_file
from menu_import.service import MenuImportService
from menu_import.validation import validate_row

__all__ = [
    "ImportCommitResult",
    "MenuFileError",
    "MenuImportResult",
    "MenuImportRow",
    "MenuImportService",
    "RowFilter",
    "UnsupportedFormatError",
    "parse_menu_file",
    "validate_row",
]
