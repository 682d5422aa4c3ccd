"""Velocity, runway and reorder arithmetic.

Pure functions: every input is passed in, nothing is read from the store.
Velocity is kept as an exact ``Fraction`` so that ceilings over whole-unit
needs do not pick up float rounding; callers convert to float for output.
"""

from __future__ import annotations

import math
from datetime import date
from fractions import Fraction
from numbers import Real

from stockplanner.errors import ValidationError

ORDER_NOW = "ORDER NOW"
ORDER_SOON = "ORDER SOON"
OK = "OK"

LATE = "LATE"
AT_RISK = "AT RISK"
ON_TRACK = "ON TRACK"

VELOCITY_WINDOWS = (7, 14, 30, 90)

# ORDER SOON band reaches 1.5x the lead time
SOON_FACTOR = Fraction(3, 2)


def daily_velocity(units_sold: int, window_days: int) -> Fraction:
    if window_days <= 0:
        raise ValidationError("window days must be a positive integer")
    return Fraction(int(units_sold), int(window_days))


def days_of_stock(stock: int, velocity: Real) -> Fraction | None:
    """Runway in days; ``None`` means no consumption, i.e. infinite runway."""
    if velocity <= 0:
        return None
    return Fraction(stock) / Fraction(velocity)


def reorder_status(runway: Real | None, lead_time_days: int) -> str:
    if runway is None:
        return OK
    if runway <= lead_time_days:
        return ORDER_NOW
    if runway <= SOON_FACTOR * lead_time_days:
        return ORDER_SOON
    return OK


def lead_time_reorder_qty(stock: int, velocity: Real, lead_time_days: int = 30, buffer_days: int = 14) -> int:
    needed = math.ceil((lead_time_days + buffer_days) * Fraction(velocity) - stock)
    return max(needed, 0)


def coverage_reorder_qty(stock: int, velocity: Real, target_days: int = 60) -> int:
    needed_stock = math.ceil(Fraction(velocity) * target_days)
    return max(needed_stock - stock, 0)


def po_risk(expected_date: date | None, today: date, at_risk_days: int = 7) -> tuple[str, int | None]:
    """Classify an outstanding order by how close its expected date is."""
    if expected_date is None:
        return ON_TRACK, None
    days_until = (expected_date - today).days
    if days_until < 0:
        return LATE, days_until
    if days_until <= at_risk_days:
        return AT_RISK, days_until
    return ON_TRACK, days_until
