"""In-memory draft models edited by the quote builder.

These are the session-side shapes: they carry transient flags (selection,
manual override) that never reach the version store.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

# Shot type of the synthetic animation row derived from scene shots
ANIMATION_COMPANION_TYPE = "__animation_companion"


class AnimationComplexity(str, Enum):
    """Animation effort per scene shot (16h regular, 32h complex)."""

    regular = "regular"
    complex = "complex"


class LineItemCategory(str, Enum):
    service = "service"
    deliverable = "deliverable"
    pre_production = "pre_production"


class BuilderShot(BaseModel):
    """One shot type row in a module's breakdown."""

    shot_type: str
    quantity: Annotated[int, Field(ge=0)] = 0
    base_hours_each: Annotated[float, Field(ge=0)] = 0.0
    efficiency_multiplier: Annotated[float, Field(ge=0.1, le=5.0)] = 1.0
    adjusted_hours: float = 0.0
    percentage: Annotated[float, Field(ge=0, le=100)] = 0.0
    sort_order: int = 0
    manual_override: bool = False
    selected: bool = False
    is_companion: bool = False
    animation_override: Optional[AnimationComplexity] = None

    def recomputed(self, **updates) -> BuilderShot:
        """Copy with updates applied and adjusted hours re-derived."""
        shot = self.model_copy(update=updates)
        shot.adjusted_hours = shot.quantity * shot.base_hours_each * shot.efficiency_multiplier
        return shot


class BuilderModule(BaseModel):
    """A film within a version: its own duration, shots and complexity."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str = "Film 1"
    duration: Annotated[int, Field(ge=1, le=600)] = 60
    shots: list[BuilderShot] = []
    animation_complexity: AnimationComplexity = AnimationComplexity.regular

    @property
    def user_shots(self) -> list[BuilderShot]:
        return [s for s in self.shots if not s.is_companion]

    @property
    def companion(self) -> Optional[BuilderShot]:
        return next((s for s in self.shots if s.is_companion), None)


class BuilderLineItem(BaseModel):
    """Flat hours addition outside the shot breakdown."""

    name: Annotated[str, Field(min_length=1, max_length=200)]
    category: LineItemCategory = LineItemCategory.service
    hours_each: Annotated[float, Field(ge=0)] = 0.0
    quantity: Annotated[int, Field(ge=1, le=999)] = 1
    notes: Optional[str] = None

    @property
    def total_hours(self) -> float:
        return self.hours_each * self.quantity
