"""
Decimal-safe amount helpers shared by every aggregation.

Rows may arrive as plain mappings (rows fetched from the backend), payload
models, or SyncRecords. Amounts may be Decimal, int, float, str or missing.
None of these helpers raise.
"""

import math
from collections.abc import Iterable, Mapping
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from budgeter.config import get_default_currency


ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    """
    Convert an amount to Decimal without binary floating point error.

    Floats go through their shortest repr, so 0.1 becomes Decimal('0.1').
    Missing, non-finite and unparseable values count as zero.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(repr(value)) if math.isfinite(value) else ZERO
    if isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            return ZERO
        try:
            parsed = Decimal(text)
        except InvalidOperation:
            return ZERO
        return parsed if parsed.is_finite() else ZERO
    return ZERO


def field_value(row: Any, field: str) -> Any:
    """Read a business field from a mapping, a payload model or a SyncRecord."""
    if isinstance(row, Mapping):
        return row.get(field)
    payload = getattr(row, "payload", None)
    if payload is not None:
        return getattr(payload, field, None)
    return getattr(row, field, None)


def sum_field(rows: Optional[Iterable[Any]], field: str) -> Decimal:
    """Sum one amount field over rows; an empty or missing row set sums to zero."""
    return sum((to_decimal(field_value(row, field)) for row in rows or ()), ZERO)


def row_currency(row: Any, default: Optional[str] = None) -> str:
    value = field_value(row, "currency")
    if not value:
        return default or get_default_currency()
    return str(value).strip().upper()


def group_by_currency(
    rows: Optional[Iterable[Any]],
    default: Optional[str] = None,
) -> dict[str, list[Any]]:
    """Split rows by currency, keeping first-seen currency order."""
    default = default or get_default_currency()
    grouped: dict[str, list[Any]] = {}
    for row in rows or ():
        grouped.setdefault(row_currency(row, default), []).append(row)
    return grouped


def totals_by_currency(
    rows: Optional[Iterable[Any]],
    field: str,
    default: Optional[str] = None,
) -> dict[str, Decimal]:
    """Sum one field per currency."""
    return {
        currency: sum_field(group, field)
        for currency, group in group_by_currency(rows, default).items()
    }


def percent(part: Decimal, whole: Decimal, places: int = 1) -> Decimal:
    """part / whole as a rounded percentage; zero when whole is not positive."""
    if whole <= 0:
        return ZERO
    return (part / whole * 100).quantize(Decimal(1).scaleb(-places))
