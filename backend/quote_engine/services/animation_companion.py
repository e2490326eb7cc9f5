"""Animation companion row synchronization.

Every scene shot needs a matching animation pass. Rather than asking the
user to enter it, the builder derives one synthetic "companion" row per
module from the scene shots it contains. The row is always stripped and
rebuilt from scratch, so syncing is idempotent and safe after every edit.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence, Union

from quote_engine.models import (
    ANIMATION_COMPANION_TYPE,
    AnimationComplexity,
    BuilderShot,
    RateCardItem,
    RateCatalog,
    ShotCategory,
)
from quote_engine.services.budget_math import round_hours

logger = logging.getLogger(__name__)

# Animation hours per scene shot unit
COMPLEXITY_HOURS = {
    AnimationComplexity.regular: 16,
    AnimationComplexity.complex: 32,
}


def build_category_map(
    catalog: Union[RateCatalog, Iterable[RateCardItem]],
) -> dict[str, ShotCategory]:
    """Map lowercased shot types to their rate card category."""
    items = catalog.items if isinstance(catalog, RateCatalog) else catalog
    categories: dict[str, ShotCategory] = {}
    for item in items:
        categories.setdefault(item.shot_type.lower(), item.category)
    return categories


def strip_companions(shots: Sequence[BuilderShot]) -> list[BuilderShot]:
    return [shot for shot in shots if not shot.is_companion]


def build_companion(
    shots: Sequence[BuilderShot],
    module_complexity: AnimationComplexity,
    categories: dict[str, ShotCategory],
) -> Optional[BuilderShot]:
    """Compute the companion row for a list of non-companion shots.

    Returns:
        The companion row, or None when there are no scene shot units.
    """
    quantity = 0
    total = 0.0
    for shot in shots:
        if categories.get(shot.shot_type.lower()) != ShotCategory.scene:
            continue
        complexity = shot.animation_override or module_complexity
        quantity += shot.quantity
        total += shot.quantity * COMPLEXITY_HOURS[AnimationComplexity(complexity)]

    if quantity <= 0:
        return None

    # Total comes from the rounded average, matching what a reload shows
    base_hours_each = round_hours(total / quantity)
    return BuilderShot(
        shot_type=ANIMATION_COMPANION_TYPE,
        quantity=quantity,
        base_hours_each=base_hours_each,
        efficiency_multiplier=1.0,
        adjusted_hours=round_hours(base_hours_each * quantity),
        is_companion=True,
        selected=False,
        animation_override=None,
    )


def sync_animation_companion(
    shots: Sequence[BuilderShot],
    module_complexity: AnimationComplexity,
    catalog: Union[RateCatalog, Iterable[RateCardItem]],
) -> list[BuilderShot]:
    """Strip any companion rows and append a freshly computed one.

    Args:
        shots: The module's shots, possibly including a stale companion.
        module_complexity: Default complexity for shots with no override.
        catalog: Rate catalog (or its items) used to find scene shots.

    Returns:
        New list: the non-companion shots in order, followed by the
        companion row when any scene shot has a non-zero quantity.
    """
    user_shots = strip_companions(shots)
    companion = build_companion(user_shots, module_complexity, build_category_map(catalog))
    if companion is None:
        logger.debug("No scene shots; companion row omitted")
        return user_shots

    companion.sort_order = len(user_shots)
    logger.debug(
        f"Companion synced: qty={companion.quantity} "
        f"base={companion.base_hours_each} adjusted={companion.adjusted_hours}"
    )
    return user_shots + [companion]
