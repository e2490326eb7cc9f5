"""Percentage-to-quantity distribution.

Turns percentage shares into integer shot quantities that sum exactly to a
target count, using largest-remainder apportionment. Ties between equal
remainders go to the shot with more base hours when adding units, and are
taken from the shot with fewer base hours when trimming.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Sequence

# Remainders closer than this are treated as equal
REMAINDER_EPSILON = 1e-6


@dataclass
class DistributedShot:
    shot_type: str
    quantity: int


@dataclass
class _Share:
    index: int
    floored: int
    remainder: float
    base_hours_each: float


def _fill_order(a: _Share, b: _Share) -> int:
    # Largest remainder first, then larger base hours
    if abs(a.remainder - b.remainder) > REMAINDER_EPSILON:
        return -1 if a.remainder > b.remainder else 1
    if a.base_hours_each != b.base_hours_each:
        return -1 if a.base_hours_each > b.base_hours_each else 1
    return 0


def _trim_order(a: _Share, b: _Share) -> int:
    # Smallest remainder first, then smaller base hours
    if abs(a.remainder - b.remainder) > REMAINDER_EPSILON:
        return -1 if a.remainder < b.remainder else 1
    if a.base_hours_each != b.base_hours_each:
        return -1 if a.base_hours_each < b.base_hours_each else 1
    return 0


def _apportion(total: int, percentages: Sequence[float], base_hours: Sequence[float]) -> list[int]:
    shares = []
    for index, (pct, hours) in enumerate(zip(percentages, base_hours)):
        raw = total * pct / 100
        floored = max(0, math.floor(raw))
        shares.append(_Share(index, floored, raw - floored, hours))

    quantities = [share.floored for share in shares]
    allocated = sum(quantities)

    if allocated > total:
        trim = sorted(shares, key=cmp_to_key(_trim_order))
        cursor = 0
        while allocated > total:
            share = trim[cursor % len(trim)]
            if quantities[share.index] > 0:
                quantities[share.index] -= 1
                allocated -= 1
            cursor += 1

    fill = sorted(shares, key=cmp_to_key(_fill_order))
    for cursor in range(total - allocated):
        quantities[fill[cursor % len(fill)].index] += 1

    return quantities


def distribute(total_target_count: int, shots: Sequence) -> list[DistributedShot]:
    """Distribute a target shot count across shots by percentage.

    Args:
        total_target_count: Number of shots the quantities must sum to.
        shots: Objects with `shot_type`, `percentage` (0-100) and
               `base_hours_each` attributes.

    Returns:
        One DistributedShot per input shot, in input order. Quantities
        sum to `total_target_count` (all zero when it is <= 0).
    """
    if total_target_count <= 0 or not shots:
        return [DistributedShot(shot.shot_type, 0) for shot in shots]

    quantities = _apportion(
        int(total_target_count),
        [shot.percentage for shot in shots],
        [shot.base_hours_each for shot in shots],
    )
    return [DistributedShot(shot.shot_type, qty) for shot, qty in zip(shots, quantities)]


def normalize_percentages(shots: Sequence) -> list[float]:
    """Rescale percentages so the breakdown adds up to 100.

    Manually overridden shots keep their share; automatic shots are scaled
    to fill what is left. When every shot is manual, all shares are scaled
    together. Automatic shots with no share between them split the
    remainder equally.

    Args:
        shots: Objects with `percentage` and `manual_override` attributes.

    Returns:
        Normalized percentages, in input order.
    """
    if not shots:
        return []

    auto = [s for s in shots if not s.manual_override]
    if not auto:
        total = sum(s.percentage for s in shots)
        if total <= 0:
            return [s.percentage for s in shots]
        return [s.percentage / total * 100 for s in shots]

    manual_total = sum(s.percentage for s in shots if s.manual_override)
    auto_total = sum(s.percentage for s in auto)
    available = max(0.0, 100 - manual_total)

    result = []
    for shot in shots:
        if shot.manual_override:
            result.append(shot.percentage)
        elif auto_total <= 0:
            result.append(available / len(auto))
        else:
            result.append(shot.percentage / auto_total * available)
    return result


def allocate_with_overrides(total_target_count: int, shots: Sequence) -> list[int]:
    """Quantities for a breakdown where some shots are frozen.

    Manually overridden shots keep their quantity, which is taken out of
    the target before the automatic shots are distributed by their
    relative shares.

    Args:
        total_target_count: Target shot count of the module.
        shots: Objects with `quantity`, `percentage`, `base_hours_each`
               and `manual_override` attributes.

    Returns:
        Quantities in input order.
    """
    manual_quantity = sum(s.quantity for s in shots if s.manual_override)
    pool = max(0, total_target_count - manual_quantity)

    quantities = [s.quantity if s.manual_override else 0 for s in shots]
    auto_index = [i for i, s in enumerate(shots) if not s.manual_override]
    if not auto_index:
        return quantities

    auto_total = sum(shots[i].percentage for i in auto_index)
    if auto_total > 0:
        shares = [shots[i].percentage / auto_total * 100 for i in auto_index]
    else:
        shares = [100 / len(auto_index)] * len(auto_index)

    if pool > 0:
        auto_quantities = _apportion(
            pool, shares, [shots[i].base_hours_each for i in auto_index]
        )
        for i, qty in zip(auto_index, auto_quantities):
            quantities[i] = qty
    return quantities
