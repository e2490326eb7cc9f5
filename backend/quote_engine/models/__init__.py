"""Quote engine models package.

Note: keep these as the source-of-truth schemas for the version store and
any client that mirrors them.
"""

from .builder import (
    ANIMATION_COMPANION_TYPE,
    AnimationComplexity,
    BuilderLineItem,
    BuilderModule,
    BuilderShot,
    LineItemCategory,
)
from .preferences import InterfacePreferences
from .quote import QuoteMode, QuoteStatus
from .rate_card import RateCard, RateCardItem, RateCatalog, ShotCategory
from .version import (
    FilmTemplate,
    TemplateShot,
    VersionLineItem,
    VersionModule,
    VersionPayload,
    VersionRecord,
    VersionShot,
    MAX_NOTES_LENGTH,
    MAX_SHOT_QUANTITY,
    MAX_SHOTS_PER_MODULE,
)

__all__ = [
    "ANIMATION_COMPANION_TYPE",
    "AnimationComplexity",
    "BuilderLineItem",
    "BuilderModule",
    "BuilderShot",
    "LineItemCategory",
    "InterfacePreferences",
    "QuoteMode",
    "QuoteStatus",
    "RateCard",
    "RateCardItem",
    "RateCatalog",
    "ShotCategory",
    "FilmTemplate",
    "TemplateShot",
    "VersionLineItem",
    "VersionModule",
    "VersionPayload",
    "VersionRecord",
    "VersionShot",
    "MAX_NOTES_LENGTH",
    "MAX_SHOT_QUANTITY",
    "MAX_SHOTS_PER_MODULE",
]
