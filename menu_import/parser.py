"""
Menu import file parsing.

Reads an uploaded menu file into a list of raw row dicts with normalised
column names. Supported formats are CSV (header row required), JSON
(a list of objects, or an object with an "items" list) and Excel .xlsx
workbooks (first sheet, header row first). Legacy .xls files are not read.
Values are left as read; typing and validation happen in menu_import.validation.
"""

import csv
import io
import json
import logging
import re
import zipfile
from pathlib import PurePath
from typing import Any, Union

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from checkout.errors import CheckoutError

logger = logging.getLogger("menu_import")

SUPPORTED_FORMATS = ("csv", "json", "xlsx")

KNOWN_COLUMNS = {
    "name",
    "description",
    "category",
    "base_price",
    "unit",
    "min_order_quantity",
    "max_order_quantity",
    "preparation_time_minutes",
    "is_available",
    "is_halal",
    "is_vegetarian",
    "is_vegan",
    "is_spicy",
    "spicy_level",
    "allergens",
    "tags",
    "bulk_price",
    "bulk_min_quantity",
}

COLUMN_ALIASES = {
    "price": "base_price",
    "item_name": "name",
    "product_name": "name",
    "min_qty": "min_order_quantity",
    "min_quantity": "min_order_quantity",
    "max_qty": "max_order_quantity",
    "max_quantity": "max_order_quantity",
    "prep_time": "preparation_time_minutes",
    "preparation_time": "preparation_time_minutes",
    "available": "is_available",
    "halal": "is_halal",
    "vegetarian": "is_vegetarian",
    "vegan": "is_vegan",
    "spicy": "is_spicy",
    "bulk_min_qty": "bulk_min_quantity",
}


class UnsupportedFormatError(CheckoutError):
    """The uploaded file is not CSV, JSON or .xlsx."""


class MenuFileError(CheckoutError):
    """The file has a supported extension but its contents cannot be read."""


def normalize_header(header: str) -> str:
    key = re.sub(r"[\s\-]+", "_", (header or "").strip().lower())
    return COLUMN_ALIASES.get(key, key)


def normalize_row(row: dict[str, Any]) -> dict[str, Any]:
    normalized = {}
    for key, value in row.items():
        if key is None:
            continue
        if isinstance(value, str):
            value = value.strip()
        normalized[normalize_header(key)] = value
    return normalized


def detect_format(filename: str) -> str:
    suffix = PurePath(filename or "").suffix.lower().lstrip(".")
    if suffix not in SUPPORTED_FORMATS:
        raise UnsupportedFormatError(
            f"Unsupported file format '{suffix or filename}'. Use CSV, JSON or XLSX.",
            {"filename": filename, "supported": list(SUPPORTED_FORMATS)},
        )
    return suffix


def _decode(content: Union[str, bytes]) -> str:
    if isinstance(content, bytes):
        # utf-8-sig drops the BOM spreadsheet exports often add
        return content.decode("utf-8-sig")
    return content.lstrip("\ufeff")


def parse_csv(content: Union[str, bytes]) -> list[dict[str, Any]]:
    reader = csv.DictReader(io.StringIO(_decode(content)))
    if not reader.fieldnames:
        raise MenuFileError("CSV file has no header row")
    rows = []
    for row in reader:
        if not any((value or "").strip() for value in row.values() if isinstance(value, str)):
            continue
        rows.append(normalize_row(row))
    return rows


def parse_json(content: Union[str, bytes]) -> list[dict[str, Any]]:
    try:
        data = json.loads(_decode(content))
    except json.JSONDecodeError as e:
        raise MenuFileError(f"Invalid JSON: {e}") from e

    if isinstance(data, dict):
        data = data.get("items")
    if not isinstance(data, list):
        raise MenuFileError('JSON must be a list of items or an object with an "items" list')

    rows = []
    for index, entry in enumerate(data, start=1):
        if not isinstance(entry, dict):
            raise MenuFileError(f"Item {index} is not an object")
        rows.append(normalize_row(entry))
    return rows


def parse_xlsx(content: Union[str, bytes]) -> list[dict[str, Any]]:
    """Read the first worksheet; the first row holds the column headers."""
    if isinstance(content, str):
        raise MenuFileError("Excel files must be uploaded as binary content")
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError) as e:
        raise MenuFileError(f"Invalid Excel file: {e}") from e

    try:
        cells = workbook.worksheets[0].iter_rows(values_only=True)
        header = next(cells, None)
        if not header or all(h is None for h in header):
            raise MenuFileError("Excel sheet has no header row")
        headers = [str(h) if h is not None else None for h in header]

        rows = []
        for values in cells:
            if all(v is None or (isinstance(v, str) and not v.strip()) for v in values):
                continue
            rows.append(normalize_row(dict(zip(headers, values))))
        return rows
    finally:
        workbook.close()


def parse_menu_file(filename: str, content: Union[str, bytes]) -> tuple[str, list[dict[str, Any]]]:
    """
    Parse an uploaded menu file.

    Returns:
        (file format, raw rows with normalised column names)

    Raises:
        UnsupportedFormatError: The extension is not .csv, .json or .xlsx
        MenuFileError: The content cannot be read in that format
    """
    file_format = detect_format(filename)
    if file_format == "csv":
        rows = parse_csv(content)
    elif file_format == "xlsx":
        rows = parse_xlsx(content)
    else:
        rows = parse_json(content)
    logger.info(f"Parsed {len(rows)} rows from {filename}")
    return file_format, rows
