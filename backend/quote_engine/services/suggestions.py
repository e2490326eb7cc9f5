"""Budget suggestions: what could still fit in the remaining hours.

Advisory only. Suggestions are computed from the remaining budget and
never change the builder.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Optional

from quote_engine import config
from quote_engine.models import RateCardItem

CATEGORY_WEIGHTS = {
    "post": 3,
    "animation": 2,
    "service": 2,
    "scene": 1,
    "material": 1,
}
DEFAULT_CATEGORY_WEIGHT = 1

# Line items offered alongside rate card shots: (name, hours each)
LINE_ITEM_TEMPLATES = [
    ("Additional Editing", 4),
    ("Creative Direction", 6),
    ("Pre-Production", 8),
]


@dataclass
class Suggestion:
    name: str
    category: str
    quantity: int
    hours_each: float
    total_hours: float
    score: float
    is_line_item: bool = False


def _category_name(category) -> str:
    return getattr(category, "value", category)


def build_suggestions(
    remaining: Optional[float],
    rate_card_items: Iterable[RateCardItem],
    limit: Optional[int] = None,
) -> list[Suggestion]:
    """Rank what could fill the remaining budget.

    Each candidate is bought as many times as fits. Its score is the hours
    it would use, weighted by category so post-production and animation
    rank ahead of more scene shots.

    Args:
        remaining: Remaining pool hours, or None outside budget mode.
        rate_card_items: Items from the quote's rate card.
        limit: Maximum number of suggestions (config default when None).

    Returns:
        Suggestions sorted by score, highest first.
    """
    if remaining is None or remaining <= 0:
        return []

    candidates = [
        (item.shot_type, _category_name(item.category), item.hours, False)
        for item in rate_card_items
        if item.hours > 0
    ]
    candidates.extend((name, "service", hours, True) for name, hours in LINE_ITEM_TEMPLATES)

    results = []
    for name, category, hours, is_line_item in candidates:
        quantity = math.floor(remaining / hours)
        if quantity < 1:
            continue
        total = quantity * hours
        weight = CATEGORY_WEIGHTS.get(category, DEFAULT_CATEGORY_WEIGHT)
        results.append(
            Suggestion(
                name=name,
                category=category,
                quantity=quantity,
                hours_each=hours,
                total_hours=total,
                score=total * weight,
                is_line_item=is_line_item,
            )
        )

    results.sort(key=lambda s: s.score, reverse=True)
    return results[: config.MAX_SUGGESTIONS if limit is None else limit]
