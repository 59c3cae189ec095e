"""
Row validation for menu imports.

Each row is checked on its own; there are no cross-row rules (duplicate
names, for example, are allowed). Problems that make a row unusable are
errors; questionable but importable values are warnings.
"""

import math
from typing import Any, Optional

from menu_import.models import MenuImportRow
from menu_import.parser import KNOWN_COLUMNS

MAX_NAME_LENGTH = 100
MAX_BASE_PRICE = 10000.0
MAX_PREPARATION_MINUTES = 1440

TRUE_VALUES = {"true", "yes", "y", "1"}
FALSE_VALUES = {"false", "no", "n", "0"}


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _text(value: Any) -> Optional[str]:
    if _is_blank(value):
        return None
    return str(value).strip()


def _parse_float(raw: dict, field: str, label: str, errors: list[str]) -> Optional[float]:
    value = raw.get(field)
    if _is_blank(value):
        return None
    if isinstance(value, bool):
        errors.append(f"{label} must be a number")
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        errors.append(f"{label} must be a number")
        return None
    if not math.isfinite(number):
        errors.append(f"{label} must be a number")
        return None
    return number


def _parse_int(raw: dict, field: str, label: str, errors: list[str]) -> Optional[int]:
    value = raw.get(field)
    if _is_blank(value):
        return None
    if isinstance(value, bool):
        errors.append(f"{label} must be a whole number")
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        errors.append(f"{label} must be a whole number")
        return None
    if not number.is_integer():
        errors.append(f"{label} must be a whole number")
        return None
    return int(number)


def _parse_bool(raw: dict, field: str, label: str, default: bool, errors: list[str]) -> bool:
    value = raw.get(field)
    if _is_blank(value):
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    errors.append(f"{label} must be yes/no or true/false")
    return default


def _parse_list(value: Any) -> list[str]:
    if _is_blank(value):
        return []
    if isinstance(value, list):
        return [str(v).strip() for v in value if not _is_blank(v)]
    return [part.strip() for part in str(value).split(",") if part.strip()]


def validate_row(row_number: int, raw: dict[str, Any]) -> MenuImportRow:
    """Type and check one normalised row."""
    errors: list[str] = []
    warnings: list[str] = []

    name = _text(raw.get("name"))
    if name is None:
        errors.append("Name is required")
    elif len(name) > MAX_NAME_LENGTH:
        errors.append(f"Name must be at most {MAX_NAME_LENGTH} characters")

    category = _text(raw.get("category"))
    if category is None:
        errors.append("Category is required")

    description = _text(raw.get("description"))
    if description is None:
        warnings.append("Description is missing")

    base_price = _parse_float(raw, "base_price", "Base price", errors)
    if base_price is None:
        if _is_blank(raw.get("base_price")):
            errors.append("Base price is required")
    elif base_price <= 0:
        errors.append("Base price must be greater than 0")
    elif base_price > MAX_BASE_PRICE:
        errors.append(f"Base price cannot exceed {MAX_BASE_PRICE:.0f}")

    min_qty = _parse_int(raw, "min_order_quantity", "Minimum order quantity", errors)
    if min_qty is not None and min_qty < 1:
        errors.append("Minimum order quantity must be at least 1")

    max_qty = _parse_int(raw, "max_order_quantity", "Maximum order quantity", errors)
    if max_qty is not None and max_qty < (min_qty or 1):
        errors.append("Maximum order quantity cannot be less than the minimum")

    prep_time = _parse_int(raw, "preparation_time_minutes", "Preparation time", errors)
    if prep_time is not None and not 0 <= prep_time <= MAX_PREPARATION_MINUTES:
        errors.append(f"Preparation time must be between 0 and {MAX_PREPARATION_MINUTES} minutes")

    is_available = _parse_bool(raw, "is_available", "Available", True, errors)
    is_halal = _parse_bool(raw, "is_halal", "Halal", False, errors)
    is_vegetarian = _parse_bool(raw, "is_vegetarian", "Vegetarian", False, errors)
    is_vegan = _parse_bool(raw, "is_vegan", "Vegan", False, errors)
    is_spicy = _parse_bool(raw, "is_spicy", "Spicy", False, errors)

    spicy_level = _parse_int(raw, "spicy_level", "Spicy level", errors)
    if spicy_level is not None:
        if not 1 <= spicy_level <= 5:
            errors.append("Spicy level must be between 1 and 5")
            spicy_level = None
        elif not is_spicy:
            warnings.append("Spicy level is set but the item is not marked spicy")

    if is_vegan and not is_vegetarian:
        warnings.append("Vegan items are usually also vegetarian")

    bulk_price = _parse_float(raw, "bulk_price", "Bulk price", errors)
    bulk_min_qty = _parse_int(raw, "bulk_min_quantity", "Bulk minimum quantity", errors)
    if bulk_price is not None and bulk_min_qty is None and _is_blank(raw.get("bulk_min_quantity")):
        errors.append("Bulk minimum quantity is required when a bulk price is set")
    if bulk_min_qty is not None and bulk_price is None and _is_blank(raw.get("bulk_price")):
        errors.append("Bulk price is required when a bulk minimum quantity is set")
    if bulk_price is not None and bulk_price <= 0:
        errors.append("Bulk price must be greater than 0")
    elif bulk_price is not None and base_price is not None and bulk_price >= base_price:
        warnings.append("Bulk price is not lower than the base price")
    if bulk_min_qty is not None and bulk_min_qty < 1:
        errors.append("Bulk minimum quantity must be at least 1")

    unknown = sorted(key for key in raw if key not in KNOWN_COLUMNS)
    if unknown:
        warnings.append(f"Ignored unknown columns: {', '.join(unknown)}")

    return MenuImportRow(
        row_number=row_number,
        raw=raw,
        name=name,
        description=description,
        category=category,
        base_price=base_price,
        unit=_text(raw.get("unit")) or "pax",
        min_order_quantity=min_qty,
        max_order_quantity=max_qty,
        preparation_time_minutes=prep_time,
        is_available=is_available,
        is_halal=is_halal,
        is_vegetarian=is_vegetarian,
        is_vegan=is_vegan,
        is_spicy=is_spicy,
        spicy_level=spicy_level,
        allergens=_parse_list(raw.get("allergens")),
        tags=_parse_list(raw.get("tags")),
        bulk_price=bulk_price,
        bulk_min_quantity=bulk_min_qty,
        errors=errors,
        warnings=warnings,
    )


def validate_rows(rows: list[dict[str, Any]]) -> list[MenuImportRow]:
    return [validate_row(index, raw) for index, raw in enumerate(rows, start=1)]
