"""Input coercion for the booking flow.

Converts loosely-typed request values (query strings, JSON numbers) into
domain types. Every failure is a ValidationError naming the field.
"""

from __future__ import annotations

import re
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from tripdesk.errors import ValidationError

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
# Loose address check: something@something.something, no whitespace
_EMAIL = re.compile(r"^\S+@\S+\.\S+$")

_CENTS = Decimal("0.01")
_MAX_AMOUNT = Decimal("1E10")


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def require_fields(values: dict[str, Any], message: str) -> None:
    """Raise ValidationError listing every blank field in *values*."""
    missing = [name for name, value in values.items() if is_blank(value)]
    if missing:
        raise ValidationError(f"{message}: {', '.join(missing)}", fields=missing)


def positive_int(value: Any, field: str) -> int:
    """Coerce to a positive int. Accepts ints and digit strings, never bools."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a positive integer", fields=[field])
    if isinstance(value, int):
        result = value
    elif isinstance(value, float) and value.is_integer():
        result = int(value)
    elif isinstance(value, str) and value.strip().isdigit():
        result = int(value.strip())
    else:
        raise ValidationError(f"{field} must be a positive integer", fields=[field])

    if result <= 0:
        raise ValidationError(f"{field} must be a positive integer", fields=[field])
    return result


def iso_date(value: Any, field: str) -> date:
    """Parse a strict YYYY-MM-DD string."""
    if not isinstance(value, str) or not _ISO_DATE.match(value):
        raise ValidationError(f"{field} must be a date in YYYY-MM-DD format", fields=[field])
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"{field} is not a valid calendar date", fields=[field])


def date_range(start_value: Any, end_value: Any) -> tuple[date, date]:
    """Parse startDate/endDate; end must be strictly after start."""
    start = iso_date(start_value, "startDate")
    end = iso_date(end_value, "endDate")
    if start >= end:
        raise ValidationError(
            "endDate must be strictly after startDate",
            fields=["startDate", "endDate"],
        )
    return start, end


def money(value: Any, field: str) -> Decimal:
    """Coerce to a positive Decimal amount in major units, 2 decimal places."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a positive amount", fields=[field])
    try:
        # str() first so floats like 23600.1 do not drag binary noise along
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a positive amount", fields=[field])

    if not amount.is_finite() or amount <= 0:
        raise ValidationError(f"{field} must be a positive amount", fields=[field])
    # Stored as NUMERIC(12,2)
    if amount >= _MAX_AMOUNT:
        raise ValidationError(f"{field} is too large", fields=[field])
    if amount != amount.quantize(_CENTS):
        raise ValidationError(f"{field} must have at most 2 decimal places", fields=[field])
    return amount


def round_money(value: Decimal) -> Decimal:
    """Round half-up to 2 decimal places (no banker's rounding)."""
    return value.quantize(_CENTS, rounding=ROUND_HALF_UP)


def email(value: Any, field: str) -> str:
    if not isinstance(value, str) or not _EMAIL.match(value.strip()):
        raise ValidationError(f"Invalid {field} format", fields=[field])
    return value.strip()


def money_to_number(value: Decimal) -> float:
    """Render an amount as a JSON number (major units)."""
    return float(round_money(value))
