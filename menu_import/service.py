"""
Bulk menu import service.

Two steps, matching the vendor's import flow:
1. preview: parse and validate the file, nothing is written
2. commit: create menu items for the valid rows of a preview; rows with
   errors are skipped
"""

import logging
from typing import Optional, Union
from uuid import uuid4

from checkout.errors import VendorNotFoundError
from domain.data_store import DataStore, get_data_store
from menu_import.models import ImportCommitResult, MenuImportResult
from menu_import.parser import parse_menu_file
from menu_import.validation import validate_rows

logger = logging.getLogger("menu_import")


class MenuImportService:
    """
    Example:
        imports = MenuImportService()
        preview = imports.preview("vendor-001", "menu.csv", csv_text)
        if preview.can_import:
            imports.commit("vendor-001", preview)
    """

    def __init__(self, data_store: Optional[DataStore] = None):
        self.data_store = data_store or get_data_store()

    def preview(
        self,
        vendor_id: str,
        filename: str,
        content: Union[str, bytes],
    ) -> MenuImportResult:
        """
        Raises:
            VendorNotFoundError: Unknown vendor
            UnsupportedFormatError: Not a CSV, JSON or .xlsx file
            MenuFileError: The file cannot be parsed
        """
        self._require_vendor(vendor_id)
        file_format, raw_rows = parse_menu_file(filename, content)
        result = MenuImportResult(
            vendor_id=vendor_id,
            filename=filename,
            file_format=file_format,
            rows=validate_rows(raw_rows),
        )
        logger.info(
            f"Import preview for {vendor_id} ({filename}): {result.total_rows} rows, "
            f"{result.valid_rows} valid, {result.error_rows} with errors, "
            f"{result.warning_rows} with warnings"
        )
        return result

    def commit(self, vendor_id: str, result: MenuImportResult) -> ImportCommitResult:
        """Create menu items for every valid row of a preview."""
        self._require_vendor(vendor_id)
        if result.vendor_id != vendor_id:
            raise ValueError(
                f"Preview belongs to vendor {result.vendor_id}, not {vendor_id}"
            )

        commit = ImportCommitResult(vendor_id=vendor_id)
        for row in result.rows:
            if not row.is_valid:
                commit.skipped_rows.append(row.row_number)
                continue
            item = row.to_menu_item(vendor_id, f"item-{uuid4().hex[:8]}")
            self.data_store.add_menu_item(item)
            commit.created_item_ids.append(item.id)

        logger.info(
            f"Imported {commit.created_count} items for {vendor_id}, "
            f"skipped rows {commit.skipped_rows or 'none'}"
        )
        return commit

    def _require_vendor(self, vendor_id: str):
        if self.data_store.get_vendor(vendor_id) is None:
            logger.error(f"Vendor not found: {vendor_id}")
            raise VendorNotFoundError(f"Vendor {vendor_id} not found")
