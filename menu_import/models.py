"""
Models for the bulk menu import preview.

Each parsed spreadsheet row becomes a MenuImportRow carrying the typed
values that could be read plus its own error and warning lists. Rows with
errors are shown in the preview and skipped on commit.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from domain.models import MenuItem


class RowFilter(str, Enum):
    ALL = "all"
    VALID = "valid"
    ERRORS = "errors"
    WARNINGS = "warnings"


class MenuImportRow(BaseModel):
    """One row of an import file after validation."""
    row_number: int = Field(..., ge=1, description="1-based data row number")
    raw: dict[str, Any] = Field(default_factory=dict, description="Normalised source values")

    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    base_price: Optional[float] = None
    unit: str = "pax"
    min_order_quantity: Optional[int] = None
    max_order_quantity: Optional[int] = None
    preparation_time_minutes: Optional[int] = None
    is_available: bool = True
    is_halal: bool = False
    is_vegetarian: bool = False
    is_vegan: bool = False
    is_spicy: bool = False
    spicy_level: Optional[int] = None
    allergens: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    bulk_price: Optional[float] = None
    bulk_min_quantity: Optional[int] = None

    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_menu_item(self, vendor_id: str, item_id: str) -> MenuItem:
        """Build the menu item this row describes. Only call on valid rows."""
        if not self.is_valid:
            raise ValueError(f"Row {self.row_number} has errors and cannot be imported")
        return MenuItem(
            id=item_id,
            vendor_id=vendor_id,
            name=self.name,
            description=self.description,
            category=self.category,
            base_price=self.base_price,
            unit=self.unit,
            is_available=self.is_available,
            min_order_quantity=self.min_order_quantity or 1,
            max_order_quantity=self.max_order_quantity,
            bulk_price=self.bulk_price,
            bulk_min_quantity=self.bulk_min_quantity,
            preparation_time_minutes=self.preparation_time_minutes,
            is_halal=self.is_halal,
            is_vegetarian=self.is_vegetarian,
            is_vegan=self.is_vegan,
            is_spicy=self.is_spicy,
            spicy_level=self.spicy_level,
            allergens=list(self.allergens),
            tags=list(self.tags),
        )


class MenuImportResult(BaseModel):
    """
    Preview of an import file.

    warning_rows counts rows that have warnings but no errors, the same rows
    the "warnings" filter shows.
    """
    vendor_id: str
    filename: str
    file_format: str
    rows: list[MenuImportRow] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)

    @property
    def total_rows(self) -> int:
        return len(self.rows)

    @property
    def valid_rows(self) -> int:
        return sum(1 for row in self.rows if row.is_valid)

    @property
    def error_rows(self) -> int:
        return sum(1 for row in self.rows if row.has_errors)

    @property
    def warning_rows(self) -> int:
        return sum(1 for row in self.rows if row.has_warnings and not row.has_errors)

    @property
    def can_import(self) -> bool:
        return self.valid_rows > 0

    def filter(self, kind: RowFilter = RowFilter.ALL) -> list[MenuImportRow]:
        kind = RowFilter(kind)
        if kind == RowFilter.VALID:
            return [row for row in self.rows if row.is_valid]
        if kind == RowFilter.ERRORS:
            return [row for row in self.rows if row.has_errors]
        if kind == RowFilter.WARNINGS:
            return [row for row in self.rows if row.has_warnings and not row.has_errors]
        return list(self.rows)

    def counts(self) -> dict[str, int]:
        return {
            "total_rows": self.total_rows,
            "valid_rows": self.valid_rows,
            "error_rows": self.error_rows,
            "warning_rows": self.warning_rows,
        }


class ImportCommitResult(BaseModel):
    vendor_id: str
    created_item_ids: list[str] = Field(default_factory=list)
    skipped_rows: list[int] = Field(default_factory=list, description="Row numbers not imported")

    @property
    def created_count(self) -> int:
        return len(self.created_item_ids)
