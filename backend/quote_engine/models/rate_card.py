"""Rate card models and the case-insensitive shot catalog."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field


class ShotCategory(str, Enum):
    """Category of a rate card item."""

    scene = "scene"
    animation = "animation"
    post = "post"
    material = "material"


class RateCardItem(BaseModel):
    """A single shot type priced in hours on a rate card."""

    model_config = ConfigDict(frozen=True)

    shot_type: Annotated[str, Field(min_length=1, max_length=200)]
    category: ShotCategory
    hours: Annotated[float, Field(ge=0)]
    sort_order: Annotated[int, Field(ge=0)] = 0
    id: Optional[str] = None


class RateCard(BaseModel):
    """Rate card with the pool and editing rates used by the builder."""

    id: str = ""
    name: str = ""
    is_default: bool = False
    hours_per_second: Annotated[float, Field(ge=0)] = 0.0
    editing_hours_per_30s: Annotated[float, Field(ge=0)] = 0.0
    hourly_rate: Annotated[float, Field(ge=0)] = 0.0
    items: list[RateCardItem] = []

    def catalog(self) -> RateCatalog:
        """Build a lookup catalog over this card's items."""
        return RateCatalog(self.items)


class RateCatalog:
    """Read-only lookup of rate card items by shot type.

    Lookups ignore case. When two items share a lowercased name the
    first one wins.
    """

    def __init__(self, items: Iterable[RateCardItem] = ()):
        self._items: list[RateCardItem] = list(items)
        self._by_type: dict[str, RateCardItem] = {}
        for item in self._items:
            self._by_type.setdefault(item.shot_type.lower(), item)

    @classmethod
    def from_dicts(cls, rows: Iterable[dict]) -> RateCatalog:
        return cls(RateCardItem.model_validate(row) for row in rows)

    @property
    def items(self) -> list[RateCardItem]:
        return list(self._items)

    def get(self, shot_type: str) -> Optional[RateCardItem]:
        return self._by_type.get(shot_type.lower())

    def category_of(self, shot_type: str) -> Optional[ShotCategory]:
        item = self.get(shot_type)
        return item.category if item else None

    def hours_of(self, shot_type: str, default: float = 0.0) -> float:
        item = self.get(shot_type)
        return item.hours if item else default

    def __contains__(self, shot_type: object) -> bool:
        return isinstance(shot_type, str) and shot_type.lower() in self._by_type

    def __len__(self) -> int:
        return len(self._items)
