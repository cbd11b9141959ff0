from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_DOWN, ROUND_HALF_UP
from typing import Any

from .errors import ValidationError


# Maximum price: $9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

QUANTITY_EXP = Decimal("0.001")
FACTOR_EXP = Decimal("0.0001")
PERCENT_EXP = Decimal("0.01")
CENT = Decimal("1")


def quantize_qty(value: Decimal) -> Decimal:
    return value.quantize(QUANTITY_EXP, rounding=ROUND_HALF_UP)


def round_cents(value: Decimal) -> int:
    """Nearest-cent rounding (half-up) of a Decimal amount already in cents."""
    return int(value.quantize(CENT, rounding=ROUND_HALF_UP))


def floor_cents(value: Decimal) -> int:
    """Round toward zero; allocations stay at or below their exact share."""
    return int(value.quantize(CENT, rounding=ROUND_DOWN))


def parse_int(field: str, value: Any, *, minimum: int | None = None) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    elif isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    else:
        raise ValidationError(f"{field} must be an integer")

    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    return result


def parse_cents(field: str, value: Any) -> int:
    cents = parse_int(field, value, minimum=0)
    if cents > MAX_PRICE_CENTS:
        raise ValidationError(f"{field} exceeds maximum of {MAX_PRICE_CENTS}")
    return cents


def parse_decimal(field: str, value: Any, *, positive: bool = False, allow_zero: bool = True, allow_negative: bool = False) -> Decimal:
    """
    Coerce JSON input to Decimal.

    Floats go through str() so 0.1 stays 0.1 instead of its binary expansion.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        result = Decimal(str(value).strip()) if isinstance(value, (str, float)) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    if (result < 0 and not allow_negative) or (positive and result == 0) or (not allow_zero and result == 0):
        raise ValidationError(f"{field} must be {'> 0' if positive or not allow_zero else '>= 0'}")
    return result


def parse_quantity(field: str, value: Any) -> Decimal:
    return quantize_qty(parse_decimal(field, value, positive=True))


def parse_percent(field: str, value: Any, *, cap: bool = True) -> Decimal:
    """Discounts are capped at 100; surcharges pass cap=False and only need to be >= 0."""
    if value is None or value == "":
        return Decimal("0")
    pct = parse_decimal(field, value)
    if cap and pct > 100:
        raise ValidationError(f"{field} must be between 0 and 100")
    return pct.quantize(PERCENT_EXP, rounding=ROUND_HALF_UP)


def require_fields(data: dict, *fields: str) -> None:
    missing = [f for f in fields if data.get(f) in (None, "")]
    if missing:
        raise ValidationError(f"{', '.join(missing)} required", details={"missing": missing})


def parse_bool(field: str, value: Any, *, default: bool) -> bool:
    # JSON booleans, plus the "true"/"false" strings query args and forms send
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ValidationError(f"{field} must be true or false")
