from __future__ import annotations

from typing import Any

from .errors import MissingFields, ValidationError


# Upper bound for prices, totals and payments (whole currency units).
# Keeps values well inside a 64-bit integer column.
MAX_AMOUNT = 999_999_999_999

# Upper bound for cart quantities and absolute stock levels.
MAX_QUANTITY = 1_000_000


def require_payload(payload: Any) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def clean_str(value: Any) -> str:
    """None -> "", everything else -> stripped string."""
    if value is None:
        return ""
    return str(value).strip()


def require_fields(payload: dict, *names: str) -> dict:
    """
    Return {name: stripped string} for every name, raising MissingFields
    listing the absent/blank ones.
    """
    values = {name: clean_str(payload.get(name)) for name in names}
    missing = [name for name, value in values.items() if not value]
    if missing:
        raise MissingFields(f"Missing fields: {', '.join(missing)}", details={"fields": missing})
    return values


def coerce_int(value: Any, field: str, *, error_cls: type = ValidationError) -> int:
    """
    Strict integer coercion: ints and plain digit strings only.
    Booleans, decimals and scientific notation are rejected.
    """
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise error_cls(f"{field} must be an integer, not a decimal")
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise error_cls(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e15") and decimal points
        if 'e' in stripped.lower() or '.' in stripped:
            raise error_cls(f"{field} must be a plain integer")
        try:
            return int(stripped)
        except ValueError:
            raise error_cls(f"{field} must be an integer")
    raise error_cls(f"{field} must be an integer")


def coerce_amount(value: Any, field: str, *, error_cls: type = ValidationError, allow_zero: bool = True) -> int:
    """Non-negative whole-unit money amount (positive when allow_zero=False)."""
    amount = coerce_int(value, field, error_cls=error_cls)
    if amount < 0 or (amount == 0 and not allow_zero):
        bound = ">= 0" if allow_zero else "> 0"
        raise error_cls(f"{field} must be {bound}")
    if amount > MAX_AMOUNT:
        raise error_cls(f"{field} cannot exceed {MAX_AMOUNT}")
    return amount


def coerce_id(value: Any, field: str, *, error_cls: type = ValidationError) -> int:
    """Positive row id that fits a 64-bit integer column."""
    row_id = coerce_int(value, field, error_cls=error_cls)
    if row_id <= 0 or row_id > 2**63 - 1:
        raise error_cls(f"{field} is not a valid id")
    return row_id
