"""Services package for quote calculation logic."""

from . import budget_math

from .animation_companion import build_category_map, sync_animation_companion
from .builder_state import BuilderStatus, QuoteBuilder
from .distribution import (
    DistributedShot,
    allocate_with_overrides,
    distribute,
    normalize_percentages,
)
from .suggestions import Suggestion, build_suggestions

__all__ = [
    "budget_math",
    "build_category_map",
    "sync_animation_companion",
    "BuilderStatus",
    "QuoteBuilder",
    "DistributedShot",
    "allocate_with_overrides",
    "distribute",
    "normalize_percentages",
    "Suggestion",
    "build_suggestions",
]
