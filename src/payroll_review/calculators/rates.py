"""Rate constants and helpers shared by the calculator and the review engine.

Every figure derived from a salary (hourly rate, overtime premiums) goes
through this module so the calculator, the anomaly detector and the overtime
breakdown agree on the same numbers.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Mapping

# Legal monthly hours (40h/week * 52 / 12)
STANDARD_MONTHLY_HOURS = Decimal("173.33")

CENTS = Decimal("0.01")
UNIT = Decimal("1")

# Premium multipliers by overtime tier label
OVERTIME_TIER_MULTIPLIERS: dict[str, Decimal] = {
    "rate15": Decimal("1.15"),  # hours 41-46
    "rate50": Decimal("1.50"),  # hours beyond 46
    "rate75": Decimal("1.75"),  # night, Sunday, public holiday
    "rate100": Decimal("2.00"),  # night on Sunday/public holiday
}

# Working days in a full period, by payment frequency
STANDARD_WORKING_DAYS: dict[str, int] = {
    "daily": 1,
    "weekly": 5,
    "biweekly": 10,
    "monthly": 22,
}


def to_decimal(value: Any) -> Decimal:
    """Coerce a stored value to Decimal; missing or non-numeric values are 0."""
    if value is None or isinstance(value, bool):
        return Decimal("0")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError):
            return Decimal("0")
    if not result.is_finite():
        return Decimal("0")
    return result


def round_to_cents(amount: Decimal) -> Decimal:
    """Round amount to 2 decimal places (cents)."""
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def round_to_unit(amount: Decimal) -> Decimal:
    """Round amount to the nearest whole currency unit."""
    return amount.quantize(UNIT, rounding=ROUND_HALF_UP)


def hourly_rate(base_salary: Any) -> Decimal:
    """Hourly rate implied by a monthly base salary."""
    return to_decimal(base_salary) / STANDARD_MONTHLY_HOURS


def total_tier_hours(overtime_hours: Mapping[str, Any] | None) -> Decimal:
    """Sum hours across all overtime tiers."""
    if not overtime_hours:
        return Decimal("0")
    return sum((to_decimal(v) for v in overtime_hours.values()), Decimal("0"))


def tier_multiplier(tier: str) -> Decimal | None:
    """Premium multiplier for a tier label, or None if the tier is unknown."""
    return OVERTIME_TIER_MULTIPLIERS.get(tier)
