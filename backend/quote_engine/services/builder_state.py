"""Quote builder session.

Holds the editable draft of one quote version: its film modules, shot
breakdowns, line items and budget settings. Every action is a synchronous
in-memory transformation that leaves the draft fully recomputed; the only
async step is ``save``, which hands the payload to a version store.

Shot indices passed to actions refer to a module's user shots (the
companion row is never addressed directly). An index that does not exist
raises IndexError.

Usage:
    builder = QuoteBuilder.from_version(version, rate_card)
    builder.set_percentage(0, 40)
    builder.update_quantity(1, 5)
    record = await builder.save(store, quote_id)
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Iterable, Optional
from uuid import uuid4

from quote_engine import config
from quote_engine.models import (
    AnimationComplexity,
    BuilderLineItem,
    BuilderModule,
    BuilderShot,
    FilmTemplate,
    LineItemCategory,
    QuoteMode,
    RateCard,
    RateCatalog,
    VersionLineItem,
    VersionModule,
    VersionPayload,
    VersionRecord,
    VersionShot,
)
from quote_engine.services import budget_math
from quote_engine.services.animation_companion import sync_animation_companion
from quote_engine.services.distribution import allocate_with_overrides, normalize_percentages
from quote_engine.services.suggestions import Suggestion, build_suggestions

if TYPE_CHECKING:
    from quote_engine.services.version_store import BaseVersionStore

logger = logging.getLogger(__name__)

MAX_LINE_ITEM_QUANTITY = 999

# Persisted amounts within this of the duration-derived amount are not overrides
BUDGET_AMOUNT_TOLERANCE = 0.005


class BuilderStatus(str, Enum):
    """Lifecycle of a builder session."""

    EMPTY = "empty"
    HYDRATED = "hydrated"
    EDITING = "editing"
    SAVING = "saving"


def _clamp_percentage(value: float) -> float:
    return max(0.0, min(100.0, value))


class QuoteBuilder:
    """Editable draft of a quote version.

    A session starts EMPTY (defaults) or HYDRATED (from a persisted
    version), moves to EDITING on the first action, and passes through
    SAVING while a save is in flight.
    """

    def __init__(
        self,
        rate_card: Optional[RateCard] = None,
        existing_version: Optional[VersionRecord] = None,
        mode: Optional[QuoteMode] = None,
    ):
        """Initialize a builder session.

        Args:
            rate_card: Rate card providing shot hours and pool rates.
            existing_version: Persisted version to hydrate from, if any.
            mode: Quote mode; defaults to the version's mode or retainer.
        """
        self._rate_card = rate_card
        self._catalog: RateCatalog = rate_card.catalog() if rate_card else RateCatalog()

        self.mode = mode or (existing_version.mode if existing_version else QuoteMode.retainer)
        self.notes = ""
        self.show_pricing = True
        self.hourly_rate = self._initial_hourly_rate(existing_version)
        self.budget_amount: Optional[float] = None
        self.modules: list[BuilderModule] = []
        self.line_items: list[BuilderLineItem] = []

        if existing_version is None:
            self.modules = [BuilderModule(name="Film 1", duration=config.DEFAULT_DURATION_SECONDS)]
            self.status = BuilderStatus.EMPTY
        else:
            self._hydrate(existing_version)
            self.status = BuilderStatus.HYDRATED

    @classmethod
    def from_version(
        cls,
        version: VersionRecord,
        rate_card: Optional[RateCard] = None,
        mode: Optional[QuoteMode] = None,
    ) -> QuoteBuilder:
        """Hydrate a session from a persisted version."""
        return cls(rate_card=rate_card, existing_version=version, mode=mode)

    # ------------------------------------------------------------------
    # Hydration
    # ------------------------------------------------------------------

    def _initial_hourly_rate(self, version: Optional[VersionRecord]) -> float:
        if self._rate_card is not None:
            return self._rate_card.hourly_rate
        if version is not None and version.hourly_rate is not None:
            return version.hourly_rate
        return config.DEFAULT_HOURLY_RATE

    def _hydrate(self, version: VersionRecord) -> None:
        self.notes = version.notes or ""

        modules = sorted(
            version.modules,
            key=lambda m: m.sort_order if m.sort_order is not None else 0,
        )
        if not modules:
            modules = [
                VersionModule(
                    name="Film 1",
                    duration_seconds=budget_math.clamp_duration(version.duration_seconds),
                )
            ]

        # Flat shot rows are matched to modules by id; orphans go to the first module.
        # Modules that carry their own rows make the flat list a duplicate.
        flat_rows = [] if any(m.shots for m in modules) else version.shots
        known_ids = {m.id for m in modules if m.id}
        by_module: dict[Optional[str], list[VersionShot]] = {}
        for shot in flat_rows:
            key = shot.module_id if shot.module_id in known_ids else None
            by_module.setdefault(key, []).append(shot)

        for position, record in enumerate(modules):
            rows = list(record.shots) + by_module.get(record.id, [])
            if position == 0:
                rows += by_module.get(None, [])
            module = BuilderModule(
                id=record.id or str(uuid4()),
                name=record.name,
                duration=budget_math.clamp_duration(
                    record.duration_seconds or version.duration_seconds
                ),
                animation_complexity=record.animation_complexity,
            )
            module.shots = self._hydrate_shots(rows, budget_math.shot_count(module.duration))
            self._redistribute(module)
            self.modules.append(module)

        self.line_items = [
            BuilderLineItem(
                name=item.name,
                category=item.category,
                hours_each=item.hours_each,
                quantity=item.quantity,
                notes=item.notes,
            )
            for item in sorted(
                version.line_items,
                key=lambda i: i.sort_order if i.sort_order is not None else 0,
            )
        ]

        persisted_amount = version.pool_budget_amount
        if persisted_amount is None and version.pool_budget_hours is not None:
            persisted_amount = version.pool_budget_hours * self.hourly_rate
        if self.mode == QuoteMode.budget and persisted_amount is not None:
            derived = self._derived_pool_hours() * self.hourly_rate
            if abs(persisted_amount - derived) > BUDGET_AMOUNT_TOLERANCE:
                self.budget_amount = persisted_amount

        logger.debug(
            f"Hydrated version {version.id or '<new>'}: "
            f"{len(self.modules)} modules, {len(self.line_items)} line items"
        )

    def _hydrate_shots(self, rows: list[VersionShot], shot_count: int) -> list[BuilderShot]:
        rows = sorted(
            (row for row in rows if not row.is_companion),
            key=lambda r: r.sort_order if r.sort_order is not None else 0,
        )
        shots = []
        for position, row in enumerate(rows):
            if row.percentage is not None:
                percentage = row.percentage
            elif shot_count > 0:
                percentage = _clamp_percentage(max(1, row.quantity) / shot_count * 100)
            else:
                percentage = 0.0
            shots.append(
                BuilderShot(
                    shot_type=row.shot_type,
                    percentage=percentage,
                    base_hours_each=row.base_hours_each,
                    efficiency_multiplier=budget_math.clamp_efficiency(row.efficiency_multiplier),
                    sort_order=position,
                    animation_override=row.animation_override,
                ).recomputed(quantity=row.quantity)
            )
        return shots

    # ------------------------------------------------------------------
    # Internal recomputation
    # ------------------------------------------------------------------

    def _touch(self) -> None:
        if self.status != BuilderStatus.SAVING:
            self.status = BuilderStatus.EDITING

    def _module(self, module_index: int) -> BuilderModule:
        return self.modules[module_index]

    def _sync_companion(self, module: BuilderModule) -> None:
        module.shots = sync_animation_companion(
            module.shots, module.animation_complexity, self._catalog
        )

    def _set_user_shots(self, module: BuilderModule, shots: list[BuilderShot]) -> None:
        module.shots = [s.model_copy(update={"sort_order": i}) for i, s in enumerate(shots)]
        self._sync_companion(module)

    def _redistribute(self, module: BuilderModule) -> None:
        """Re-run percentage distribution for the module's automatic shots."""
        shots = module.user_shots
        target = budget_math.shot_count(module.duration)
        percentages = normalize_percentages(shots)
        shots = [s.model_copy(update={"percentage": p}) for s, p in zip(shots, percentages)]
        quantities = allocate_with_overrides(target, shots)
        shots = [s.recomputed(quantity=q) for s, q in zip(shots, quantities)]
        self._set_user_shots(module, shots)
        logger.debug(
            f"Redistributed module '{module.name}': target={target} "
            f"quantities={quantities}"
        )

    # ------------------------------------------------------------------
    # Duration and mode
    # ------------------------------------------------------------------

    def set_duration(self, seconds: float, module_index: int = 0) -> None:
        """Set a module's duration (clamped to 1-600 s).

        Updates the target shot count, pool and editing hours. Quantities
        are left alone; they change only on percentage edits.
        """
        module = self._module(module_index)
        module.duration = budget_math.clamp_duration(seconds)
        self._touch()
        logger.debug(f"Module '{module.name}' duration set to {module.duration}s")

    def set_mode(self, mode: QuoteMode) -> None:
        self.mode = QuoteMode(mode)
        if self.mode != QuoteMode.budget:
            self.budget_amount = None
        self._touch()

    def set_hourly_rate(self, rate: float) -> None:
        self.hourly_rate = max(0.0, rate)
        self._touch()

    def set_budget_amount(self, amount: Optional[float]) -> None:
        """Override the pool with a money budget, or None to follow duration."""
        self.budget_amount = None if amount is None else max(0.0, amount)
        self._touch()

    def set_notes(self, notes: str) -> None:
        self.notes = notes
        self._touch()

    def set_show_pricing(self, show_pricing: bool) -> None:
        self.show_pricing = show_pricing

    # ------------------------------------------------------------------
    # Shot edits
    # ------------------------------------------------------------------

    def set_percentage(self, index: int, percentage: float, module_index: int = 0) -> None:
        """Set a shot's share and redistribute the automatic shots.

        The edited shot returns to automatic mode. The other automatic
        shots are rescaled to fill what is left after the edited shot and
        any manual shots.
        """
        module = self._module(module_index)
        shots = module.user_shots
        clamped = _clamp_percentage(percentage)
        shots[index] = shots[index].model_copy(
            update={"percentage": clamped, "manual_override": False}
        )

        others = [i for i in range(len(shots)) if i != index]
        manual_total = sum(shots[i].percentage for i in others if shots[i].manual_override)
        adjustable = [i for i in others if not shots[i].manual_override]
        adjustable_total = sum(shots[i].percentage for i in adjustable)
        available = max(0.0, 100 - clamped - manual_total)

        for i in adjustable:
            if adjustable_total <= 0:
                share = available / len(adjustable)
            else:
                share = shots[i].percentage / adjustable_total * available
            shots[i] = shots[i].model_copy(update={"percentage": share})

        module.shots = shots
        self._redistribute(module)
        self._touch()

    def update_quantity(self, index: int, quantity: int, module_index: int = 0) -> None:
        """Freeze a shot at a hand-entered quantity (0 is kept as 0)."""
        module = self._module(module_index)
        shots = module.user_shots
        next_quantity = max(0, int(quantity))
        target = budget_math.shot_count(module.duration)
        percentage = _clamp_percentage(next_quantity / target * 100) if target > 0 else 0.0
        shots[index] = shots[index].model_copy(
            update={
                "quantity": next_quantity,
                "percentage": percentage,
                "manual_override": True,
            }
        )
        module.shots = shots
        self._redistribute(module)
        self._touch()

    def unlock_manual_quantity(self, index: int, module_index: int = 0) -> None:
        """Return a frozen shot to percentage-driven distribution."""
        module = self._module(module_index)
        shots = module.user_shots
        shots[index] = shots[index].model_copy(update={"manual_override": False})
        module.shots = shots
        self._redistribute(module)
        self._touch()

    def update_efficiency(self, index: int, multiplier: float, module_index: int = 0) -> None:
        module = self._module(module_index)
        shots = module.user_shots
        shots[index] = shots[index].recomputed(
            efficiency_multiplier=budget_math.clamp_efficiency(multiplier)
        )
        self._set_user_shots(module, shots)
        self._touch()

    def batch_set_efficiency(
        self, indices: Iterable[int], multiplier: float, module_index: int = 0
    ) -> None:
        """Apply one efficiency multiplier to several shots.

        Indices outside the breakdown are ignored.
        """
        module = self._module(module_index)
        wanted = set(indices)
        value = budget_math.clamp_efficiency(multiplier)
        shots = [
            s.recomputed(efficiency_multiplier=value) if i in wanted else s
            for i, s in enumerate(module.user_shots)
        ]
        self._set_user_shots(module, shots)
        self._touch()

    def add_shot(self, shot_type: str, base_hours: float, module_index: int = 0) -> None:
        """Append a shot with no share and no quantity yet."""
        module = self._module(module_index)
        shots = module.user_shots
        shots.append(
            BuilderShot(
                shot_type=shot_type,
                quantity=0,
                percentage=0.0,
                base_hours_each=max(0.0, base_hours),
                efficiency_multiplier=1.0,
                manual_override=False,
            )
        )
        self._set_user_shots(module, shots)
        self._touch()

    def remove_shot(self, index: int, module_index: int = 0) -> None:
        module = self._module(module_index)
        shots = module.user_shots
        del shots[index]
        module.shots = shots
        self._redistribute(module)
        self._touch()

    def apply_template(self, template: FilmTemplate, module_index: int = 0) -> None:
        """Replace a module's shots with a template's breakdown.

        Base hours come from the rate card (0 for unknown shot types).
        Quantities are derived from the module's current target count;
        the module's duration is kept, not the template's.
        """
        module = self._module(module_index)
        rows = sorted(
            template.shots,
            key=lambda s: s.sort_order if s.sort_order is not None else 0,
        )
        module.shots = [
            BuilderShot(
                shot_type=row.shot_type,
                percentage=row.percentage,
                base_hours_each=self._catalog.hours_of(row.shot_type),
                efficiency_multiplier=budget_math.clamp_efficiency(row.efficiency_multiplier),
            )
            for row in rows
        ]
        self._redistribute(module)
        self._touch()
        logger.info(
            f"Applied template '{template.name}' to module '{module.name}' "
            f"({len(rows)} shots, duration kept at {module.duration}s)"
        )

    def set_animation_complexity(
        self, complexity: AnimationComplexity, module_index: int = 0
    ) -> None:
        module = self._module(module_index)
        module.animation_complexity = AnimationComplexity(complexity)
        self._sync_companion(module)
        self._touch()

    def set_animation_override(
        self,
        index: int,
        override: Optional[AnimationComplexity],
        module_index: int = 0,
    ) -> None:
        module = self._module(module_index)
        shots = module.user_shots
        value = AnimationComplexity(override) if override is not None else None
        shots[index] = shots[index].model_copy(update={"animation_override": value})
        self._set_user_shots(module, shots)
        self._touch()

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def _set_selection(self, module: BuilderModule, selected: bool) -> None:
        module.shots = [
            s.model_copy(update={"selected": selected}) if not s.is_companion else s
            for s in module.shots
        ]

    def select_all(self, module_index: int = 0) -> None:
        self._set_selection(self._module(module_index), True)

    def deselect_all(self, module_index: int = 0) -> None:
        self._set_selection(self._module(module_index), False)

    def toggle_shot_selection(self, index: int, module_index: int = 0) -> None:
        module = self._module(module_index)
        shot = module.shots[index]
        if shot.is_companion:
            raise IndexError(f"shot index {index} out of range")
        module.shots[index] = shot.model_copy(update={"selected": not shot.selected})

    def selected_indices(self, module_index: int = 0) -> list[int]:
        return [i for i, s in enumerate(self._module(module_index).user_shots) if s.selected]

    # ------------------------------------------------------------------
    # Modules and line items
    # ------------------------------------------------------------------

    def add_module(self, name: Optional[str] = None) -> BuilderModule:
        module = BuilderModule(
            name=name or f"Film {len(self.modules) + 1}",
            duration=config.DEFAULT_DURATION_SECONDS,
        )
        self.modules.append(module)
        self._touch()
        return module

    def remove_module(self, module_index: int) -> None:
        """Remove a module. The last remaining module is never removed."""
        if len(self.modules) <= 1:
            logger.warning("Ignoring request to remove the only module")
            return
        del self.modules[module_index]
        self._touch()

    def rename_module(self, module_index: int, name: str) -> None:
        self._module(module_index).name = name
        self._touch()

    def add_line_item(
        self,
        name: str,
        category: LineItemCategory = LineItemCategory.service,
        hours_each: float = 0.0,
        quantity: int = 1,
        notes: Optional[str] = None,
    ) -> BuilderLineItem:
        item = BuilderLineItem(
            name=name,
            category=LineItemCategory(category),
            hours_each=max(0.0, hours_each),
            quantity=min(MAX_LINE_ITEM_QUANTITY, max(1, int(quantity))),
            notes=notes,
        )
        self.line_items.append(item)
        self._touch()
        return item

    def update_line_item(self, index: int, **updates) -> BuilderLineItem:
        """Update a line item's fields, clamping hours and quantity."""
        item = self.line_items[index]
        for key in list(updates):
            if key not in BuilderLineItem.model_fields:
                logger.warning(f"Unknown field {key} for line item update")
                updates.pop(key)
        if "hours_each" in updates:
            updates["hours_each"] = max(0.0, updates["hours_each"])
        if "quantity" in updates:
            updates["quantity"] = min(MAX_LINE_ITEM_QUANTITY, max(1, int(updates["quantity"])))
        if "category" in updates:
            updates["category"] = LineItemCategory(updates["category"])
        self.line_items[index] = item.model_copy(update=updates)
        self._touch()
        return self.line_items[index]

    def remove_line_item(self, index: int) -> None:
        del self.line_items[index]
        self._touch()

    # ------------------------------------------------------------------
    # Derived totals
    # ------------------------------------------------------------------

    @property
    def catalog(self) -> RateCatalog:
        return self._catalog

    @property
    def duration(self) -> int:
        """Duration of the first module (the whole film in single-film quotes)."""
        return self.modules[0].duration

    @property
    def shots(self) -> list[BuilderShot]:
        """Shots of the first module, companion included."""
        return self.modules[0].shots

    @property
    def total_duration(self) -> int:
        return sum(m.duration for m in self.modules)

    def target_shot_count(self, module_index: int = 0) -> int:
        """Shot count a module's percentages are distributed over."""
        return budget_math.shot_count(self._module(module_index).duration)

    @property
    def total_shot_count(self) -> int:
        return sum(budget_math.shot_count(m.duration) for m in self.modules)

    @property
    def editing_hours_per_30s(self) -> float:
        return self._rate_card.editing_hours_per_30s if self._rate_card else 0.0

    @property
    def editing_hours(self) -> float:
        return sum(
            budget_math.editing_hours(m.duration, self.editing_hours_per_30s) for m in self.modules
        )

    @property
    def total_shot_hours(self) -> float:
        return sum(budget_math.total_shot_hours(m.shots) for m in self.modules)

    @property
    def line_item_hours(self) -> float:
        return budget_math.total_line_item_hours(self.line_items)

    @property
    def total_hours(self) -> float:
        return budget_math.total_hours(
            self.total_shot_hours + self.line_item_hours, self.editing_hours
        )

    def _derived_pool_hours(self) -> float:
        hours_per_second = self._rate_card.hours_per_second if self._rate_card else 0.0
        return budget_math.pool_budget_hours(self.total_duration, hours_per_second)

    @property
    def pool_budget_hours(self) -> Optional[float]:
        if self.mode != QuoteMode.budget:
            return None
        if self.budget_amount is not None:
            return budget_math.budget_to_pool_hours(self.budget_amount, self.hourly_rate)
        return self._derived_pool_hours()

    @property
    def pool_budget_amount(self) -> Optional[float]:
        if self.mode != QuoteMode.budget:
            return None
        if self.budget_amount is not None:
            return self.budget_amount
        return self._derived_pool_hours() * self.hourly_rate

    @property
    def remaining(self) -> Optional[float]:
        pool = self.pool_budget_hours
        if pool is None:
            return None
        return budget_math.remaining_budget(pool, self.total_hours)

    def suggestions(self) -> list[Suggestion]:
        return build_suggestions(self.remaining, self._catalog.items)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    @staticmethod
    def _shot_payload(shot: BuilderShot, position: int) -> VersionShot:
        return VersionShot(
            shot_type=shot.shot_type,
            percentage=round(_clamp_percentage(shot.percentage), 4),
            quantity=shot.quantity,
            base_hours_each=budget_math.round_hours(shot.base_hours_each),
            efficiency_multiplier=shot.efficiency_multiplier,
            adjusted_hours=budget_math.round_hours(shot.adjusted_hours),
            sort_order=position,
            is_companion=shot.is_companion,
            animation_override=shot.animation_override,
        )

    def get_payload(self) -> VersionPayload:
        """Serialize the draft for the version store.

        Companion rows are included like any other shot; sort order is
        reassigned from each shot's position in its module. The flat
        ``shots`` list repeats every module's rows tagged with its id.
        """
        modules = []
        for position, module in enumerate(self.modules):
            modules.append(
                VersionModule(
                    id=module.id,
                    name=module.name,
                    duration_seconds=module.duration,
                    shot_count=budget_math.shot_count(module.duration),
                    animation_complexity=module.animation_complexity,
                    sort_order=position,
                    shots=[self._shot_payload(s, i) for i, s in enumerate(module.shots)],
                )
            )

        pool_hours = self.pool_budget_hours
        pool_amount = self.pool_budget_amount
        return VersionPayload(
            mode=self.mode,
            duration_seconds=self.total_duration,
            hourly_rate=self.hourly_rate,
            pool_budget_hours=budget_math.round_hours(pool_hours) if pool_hours is not None else None,
            pool_budget_amount=budget_math.round_hours(pool_amount) if pool_amount is not None else None,
            notes=self.notes or None,
            shots=[
                shot.model_copy(update={"module_id": module.id})
                for module in modules
                for shot in module.shots
            ],
            modules=modules,
            line_items=[
                VersionLineItem(
                    name=item.name,
                    category=item.category,
                    hours_each=item.hours_each,
                    quantity=item.quantity,
                    total_hours=budget_math.round_hours(item.total_hours),
                    notes=item.notes,
                    sort_order=i,
                )
                for i, item in enumerate(self.line_items)
            ],
        )

    async def save(
        self,
        store: BaseVersionStore,
        quote_id: str,
        version_id: Optional[str] = None,
    ) -> VersionRecord:
        """Submit the draft to a version store.

        Errors from the store propagate; the session returns to EDITING
        either way.

        Args:
            store: Persistence collaborator.
            quote_id: Quote the version belongs to.
            version_id: Existing version to overwrite, or None for a new one.

        Returns:
            The stored version record.
        """
        self.status = BuilderStatus.SAVING
        try:
            record = await store.save_version(
                quote_id, self.get_payload(), rate_card=self._rate_card, version_id=version_id
            )
        finally:
            self.status = BuilderStatus.EDITING
        logger.info(f"Saved quote {quote_id} version {record.version_number} ({record.id})")
        return record
