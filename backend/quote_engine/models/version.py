"""Boundary records for quote versions and film templates.

Shot rows arrive from HTML forms and the database with fields missing or
typed as strings. ``VersionShot`` normalizes them in one place: blank
values fall back to defaults (quantity 0, efficiency 1.0) and numeric
strings are coerced by pydantic's lax mode.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .builder import AnimationComplexity, LineItemCategory
from .quote import QuoteMode

MAX_SHOTS_PER_MODULE = 100
MAX_NOTES_LENGTH = 2000
MAX_SHOT_QUANTITY = 9999

# Numeric shot fields and the value used when they are absent or blank
_SHOT_DEFAULTS = {
    "quantity": 0,
    "base_hours_each": 0,
    "efficiency_multiplier": 1,
}


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class VersionShot(BaseModel):
    """A shot row as persisted or submitted for persistence."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    shot_type: Annotated[str, Field(min_length=1, max_length=200)]
    percentage: Optional[Annotated[float, Field(ge=0, le=100)]] = None
    quantity: Annotated[int, Field(ge=0)] = 0
    base_hours_each: Annotated[float, Field(ge=0)] = 0.0
    efficiency_multiplier: Annotated[float, Field(ge=0.1, le=5)] = 1.0
    adjusted_hours: Optional[float] = None
    sort_order: Optional[Annotated[int, Field(ge=0)]] = None
    is_companion: bool = False
    module_id: Optional[str] = None
    animation_override: Optional[AnimationComplexity] = None

    @model_validator(mode="before")
    @classmethod
    def _fill_blank_numbers(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        result = dict(data)
        for key, default in _SHOT_DEFAULTS.items():
            if _blank(result.get(key)):
                result[key] = default
        for key in ("percentage", "animation_override"):
            if _blank(result.get(key)):
                result[key] = None
        return result

    def computed_adjusted_hours(self) -> float:
        return self.quantity * self.base_hours_each * self.efficiency_multiplier


class VersionModule(BaseModel):
    """A film module as persisted or submitted for persistence."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    name: Annotated[str, Field(min_length=1, max_length=200)] = "Film 1"
    module_type: Literal["film", "supplementary"] = "film"
    duration_seconds: Optional[Annotated[int, Field(ge=1, le=600)]] = None
    shot_count: Optional[int] = None
    animation_complexity: AnimationComplexity = AnimationComplexity.regular
    sort_order: Optional[int] = None
    shots: list[VersionShot] = []


class VersionLineItem(BaseModel):
    """A flat line item as persisted or submitted for persistence."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    name: Annotated[str, Field(min_length=1, max_length=200)]
    category: LineItemCategory = LineItemCategory.service
    hours_each: Annotated[float, Field(ge=0)] = 0.0
    quantity: Annotated[int, Field(ge=1, le=999)] = 1
    total_hours: Optional[float] = None
    notes: Optional[str] = None
    sort_order: Optional[int] = None


class VersionPayload(BaseModel):
    """What the builder submits to the version store."""

    mode: Optional[QuoteMode] = None
    duration_seconds: Annotated[int, Field(ge=1)]
    hourly_rate: Optional[Annotated[float, Field(ge=0)]] = None
    pool_budget_hours: Optional[Annotated[float, Field(ge=0)]] = None
    pool_budget_amount: Optional[Annotated[float, Field(ge=0)]] = None
    notes: Optional[str] = None
    shots: list[VersionShot] = []
    modules: list[VersionModule] = []
    line_items: list[VersionLineItem] = []


class VersionRecord(BaseModel):
    """A persisted quote version, used to hydrate a builder session."""

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    quote_id: str = ""
    version_number: int = 1
    mode: QuoteMode = QuoteMode.retainer
    duration_seconds: Annotated[int, Field(ge=1)] = 60
    shot_count: int = 0
    pool_budget_hours: Optional[float] = None
    pool_budget_amount: Optional[float] = None
    total_hours: float = 0.0
    hourly_rate: Optional[float] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    shots: list[VersionShot] = []
    modules: list[VersionModule] = []
    line_items: list[VersionLineItem] = []


class TemplateShot(BaseModel):
    """Template rows carry shares, never absolute quantities."""

    model_config = ConfigDict(extra="ignore")

    shot_type: Annotated[str, Field(min_length=1, max_length=200)]
    percentage: Annotated[float, Field(ge=0, le=100)] = 0.0
    efficiency_multiplier: Annotated[float, Field(ge=0.1, le=5)] = 1.0
    sort_order: Optional[int] = None


class FilmTemplate(BaseModel):
    """Reusable shot breakdown for a kind of film."""

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    name: str = ""
    duration_seconds: Annotated[int, Field(ge=1, le=600)] = 60
    description: Optional[str] = None
    rate_card_id: Optional[str] = None
    shots: list[TemplateShot] = []
