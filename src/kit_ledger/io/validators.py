"""Validation rules for import data."""

from typing import Optional

from kit_ledger.database.models import Asset
from kit_ledger.utils.constants import ASSET_CLASSES, CONDITIONS
from kit_ledger.utils.formatters import normalize_part_name


def split_parts(value: str) -> list[str]:
    """Parts are listed in one cell separated by semicolons."""
    return [p.strip() for p in (value or "").split(";") if p.strip()]


def _check_int(row: dict, key: str, row_num: int, errors: list[str],
               required: bool = False) -> Optional[int]:
    raw = (row.get(key) or "").strip()
    if raw == "":
        if required:
            errors.append(f"Row {row_num}: {key} is required")
        return None
    try:
        value = int(raw)
    except ValueError:
        errors.append(f"Row {row_num}: {key} must be an integer")
        return None
    if value < 0:
        errors.append(f"Row {row_num}: {key} cannot be negative")
        return None
    return value


def validate_asset_row(row: dict, row_num: int) -> list[str]:
    """Validate a single row of asset import data. Returns list of error strings."""
    errors = []

    if not (row.get("id") or "").strip():
        errors.append(f"Row {row_num}: id is required")
    if not (row.get("name") or "").strip():
        errors.append(f"Row {row_num}: name is required")

    asset_class = (row.get("asset_class") or "").strip()
    if asset_class and asset_class not in ASSET_CLASSES:
        errors.append(f"Row {row_num}: unknown asset_class '{asset_class}'")

    quantity = _check_int(row, "quantity", row_num, errors)
    available = _check_int(row, "available", row_num, errors)
    if quantity is not None and available is not None and available > quantity:
        errors.append(f"Row {row_num}: available cannot exceed quantity")

    value = (row.get("monetary_value") or "").strip()
    if value:
        try:
            if float(value) < 0:
                errors.append(f"Row {row_num}: monetary_value cannot be negative")
        except ValueError:
            errors.append(f"Row {row_num}: monetary_value must be a number")

    condition = (row.get("condition") or "").strip()
    if condition and condition not in CONDITIONS:
        errors.append(f"Row {row_num}: unknown condition '{condition}'")

    return errors


def validate_finding_row(row: dict, row_num: int,
                         asset: Optional[Asset]) -> list[str]:
    """Validate one audit finding against the asset it names."""
    errors = []

    asset_id = (row.get("asset_id") or "").strip()
    if not asset_id:
        return [f"Row {row_num}: asset_id is required"]
    if asset is None:
        return [f"Row {row_num}: unknown asset '{asset_id}'"]

    sighted = _check_int(row, "sighted_qty", row_num, errors, required=True)
    if sighted is not None and sighted > asset.available:
        errors.append(
            f"Row {row_num}: sighted_qty {sighted} exceeds available "
            f"{asset.available}"
        )

    condition = (row.get("condition") or "").strip()
    if condition and condition not in CONDITIONS:
        errors.append(f"Row {row_num}: unknown condition '{condition}'")

    parts = split_parts(row.get("missing_parts")) + split_parts(row.get("damaged_parts"))
    if parts and not asset.is_composite:
        errors.append(f"Row {row_num}: {asset_id} has no tracked parts")
    elif parts:
        known = {normalize_part_name(p) for p in asset.canonical_parts}
        for part in parts:
            if normalize_part_name(part) not in known:
                errors.append(f"Row {row_num}: {asset_id} has no part '{part}'")

    return errors
