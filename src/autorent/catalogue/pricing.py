"""Daily rental price heuristic."""
from __future__ import annotations

import math
from datetime import date
from typing import Optional

BASE_PRICE = 50.0
DEFAULT_YEAR = 2000
BASELINE_YEAR = 1990
MIN_YEAR_FACTOR = 0.5
CYLINDER_STEP = 0.15

# First matching key wins, so "suv" shadows "sport utility vehicle".
CLASS_MULTIPLIERS: tuple[tuple[str, float], ...] = (
    ("suv", 1.5),
    ("sport utility vehicle", 1.5),
    ("sports car", 2.5),
    ("luxury car", 2.0),
    ("sedan", 1.2),
    ("compact car", 0.8),
    ("midsize car", 1.0),
    ("coupe", 1.8),
    ("convertible", 2.2),
)


def class_multiplier(vehicle_class: Optional[str]) -> float:
    class_text = (vehicle_class or "").lower()
    for key, multiplier in CLASS_MULTIPLIERS:
        if key in class_text:
            return multiplier
    return 1.0


def year_factor(year: Optional[int], current_year: int) -> float:
    model_year = year or DEFAULT_YEAR
    return max(MIN_YEAR_FACTOR, (model_year - BASELINE_YEAR) / (current_year - BASELINE_YEAR))


def price(
    vehicle_class: Optional[str],
    year: Optional[int],
    cylinders: Optional[int],
    current_year: Optional[int] = None,
) -> int:
    """Return the displayed daily price in dollars, rounded to the nearest 10."""

    if current_year is None:
        current_year = date.today().year

    amount = BASE_PRICE * class_multiplier(vehicle_class) * year_factor(year, current_year)
    if cylinders:
        amount *= 1 + (cylinders - 4) * CYLINDER_STEP

    rounded = int(math.floor(amount / 10 + 0.5)) * 10
    return max(rounded, 10)
