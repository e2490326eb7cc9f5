"""Pure budget calculations for quote building.

Shared by the builder session and the version store so both derive the
same totals from the same inputs.
"""

import math
from typing import Iterable

MIN_EFFICIENCY = 0.1
MAX_EFFICIENCY = 5.0

MIN_DURATION_SECONDS = 1
MAX_DURATION_SECONDS = 600

# Films this short still get a minimal breakdown
SHORT_FILM_SECONDS = 15
SHORT_FILM_SHOT_COUNT = 5

# One shot per this many seconds of film
SECONDS_PER_SHOT = 4

EDITING_CHUNK_SECONDS = 30


def pool_budget_hours(duration_seconds: float, hours_per_second: float) -> float:
    """Pool budget = duration in seconds * rate card's hours per second."""
    return duration_seconds * hours_per_second


def editing_hours(duration_seconds: float, editing_hours_per_30s: float) -> float:
    """Post-production editing hours.

    Any partial 30-second chunk counts as a full chunk.
    """
    return math.ceil(duration_seconds / EDITING_CHUNK_SECONDS) * editing_hours_per_30s


def total_shot_hours(shots: Iterable) -> float:
    """Sum of quantity * base hours * efficiency across shots.

    Args:
        shots: Objects with `quantity`, `base_hours_each` and
               `efficiency_multiplier` attributes.
    """
    return sum(s.quantity * s.base_hours_each * s.efficiency_multiplier for s in shots)


def total_hours(shot_hours: float, edit_hours: float) -> float:
    return shot_hours + edit_hours


def remaining_budget(pool: float, total: float) -> float:
    """Pool minus total. Negative means over budget."""
    return pool - total


def clamp_efficiency(value: float) -> float:
    return min(MAX_EFFICIENCY, max(MIN_EFFICIENCY, value))


def clamp_duration(seconds: float) -> int:
    return int(min(MAX_DURATION_SECONDS, max(MIN_DURATION_SECONDS, round(seconds))))


def shot_count(duration_seconds: float) -> int:
    """Target number of shots for a film of the given duration."""
    if duration_seconds <= SHORT_FILM_SECONDS:
        return SHORT_FILM_SHOT_COUNT
    return math.ceil(duration_seconds / SECONDS_PER_SHOT)


def budget_to_pool_hours(amount: float, hourly_rate: float) -> float:
    """Convert a money budget into pool hours (rate floored at 1)."""
    return amount / max(hourly_rate, 1)


def total_line_item_hours(items: Iterable) -> float:
    """Sum of hours_each * quantity across line items."""
    return sum(item.hours_each * item.quantity for item in items)


def round_hours(value: float) -> float:
    """Round to 2 decimal places, halves rounded up (not to even)."""
    return math.floor(value * 100 + 0.5) / 100
