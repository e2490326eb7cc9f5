"""Version store: persistence collaborator for quote versions.

Supports two backends:
1. In-memory (default) - for tests and single-process tools
2. MongoDB (durable) - versions survive restarts

Both recompute derived values on save (adjusted hours, shot counts, total
hours, pool budget) from the submitted payload, so a stored version never
trusts client-side totals.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from quote_engine import config
from quote_engine.exceptions import ValidationError, VersionNotFoundError
from quote_engine.models import (
    MAX_NOTES_LENGTH,
    MAX_SHOT_QUANTITY,
    MAX_SHOTS_PER_MODULE,
    QuoteMode,
    RateCard,
    VersionModule,
    VersionPayload,
    VersionRecord,
    VersionShot,
)
from quote_engine.services import budget_math

logger = logging.getLogger(__name__)

# Collection name for MongoDB storage
VERSIONS_COLLECTION = "quote_versions"


def map_shots(shots: list[VersionShot], module_id: Optional[str] = None) -> list[VersionShot]:
    """Prepare submitted shot rows for storage.

    Adjusted hours are recomputed, sort order defaults to position, and
    rows are tagged with their module.
    """
    mapped = []
    for idx, shot in enumerate(shots):
        mapped.append(
            shot.model_copy(
                update={
                    "percentage": shot.percentage if shot.percentage is not None else 0.0,
                    "adjusted_hours": budget_math.round_hours(shot.computed_adjusted_hours()),
                    "sort_order": shot.sort_order if shot.sort_order is not None else idx,
                    "module_id": shot.module_id or module_id,
                }
            )
        )
    return mapped


def calculate_pool_budget(
    mode: QuoteMode,
    hourly_rate: float,
    duration_seconds: int,
    hours_per_second: float,
    pool_budget_hours: Optional[float] = None,
    pool_budget_amount: Optional[float] = None,
) -> tuple[Optional[float], Optional[float]]:
    """Pool hours and amount for a version.

    Explicit hours win over an explicit amount, which wins over the
    duration-derived pool. Retainer quotes have no pool.

    Returns:
        Tuple of (pool_hours, pool_amount).
    """
    if mode != QuoteMode.budget:
        return None, None

    if pool_budget_hours is not None:
        amount = pool_budget_amount if pool_budget_amount is not None else pool_budget_hours * hourly_rate
        return pool_budget_hours, amount

    if pool_budget_amount is not None:
        return budget_math.budget_to_pool_hours(pool_budget_amount, hourly_rate), pool_budget_amount

    hours = budget_math.pool_budget_hours(duration_seconds, hours_per_second)
    return hours, hours * hourly_rate


def validate_payload(payload: VersionPayload) -> None:
    """Reject payloads over the storage limits.

    Raises:
        ValidationError: The payload exceeds a storage limit.
    """
    if payload.notes is not None and len(payload.notes) > MAX_NOTES_LENGTH:
        raise ValidationError(f"notes: must be at most {MAX_NOTES_LENGTH} characters")
    groups = [m.shots for m in payload.modules] if payload.modules else [payload.shots]
    for position, shots in enumerate(groups):
        if len(shots) > MAX_SHOTS_PER_MODULE:
            raise ValidationError(
                f"modules.{position}.shots: must contain at most {MAX_SHOTS_PER_MODULE} items"
            )
        for index, shot in enumerate(shots):
            if shot.quantity > MAX_SHOT_QUANTITY:
                raise ValidationError(
                    f"modules.{position}.shots.{index}.quantity: "
                    f"must be at most {MAX_SHOT_QUANTITY}"
                )


def build_version_record(
    quote_id: str,
    payload: VersionPayload,
    rate_card: Optional[RateCard] = None,
    version_id: Optional[str] = None,
    version_number: int = 1,
    default_mode: QuoteMode = QuoteMode.retainer,
) -> VersionRecord:
    """Turn a submitted payload into a stored version record."""
    hours_per_second = rate_card.hours_per_second if rate_card else 0.0
    editing_per_30s = rate_card.editing_hours_per_30s if rate_card else 0.0
    if payload.hourly_rate is not None:
        hourly_rate = payload.hourly_rate
    elif rate_card is not None:
        hourly_rate = rate_card.hourly_rate
    else:
        hourly_rate = config.DEFAULT_HOURLY_RATE
    mode = payload.mode or default_mode

    input_modules = payload.modules or [
        VersionModule(
            name="Film 1",
            duration_seconds=budget_math.clamp_duration(payload.duration_seconds),
            shots=payload.shots,
        )
    ]

    modules: list[VersionModule] = []
    shots: list[VersionShot] = []
    editing = 0.0
    for position, module in enumerate(input_modules):
        module_id = module.id or str(uuid4())
        duration = module.duration_seconds or budget_math.clamp_duration(payload.duration_seconds)
        modules.append(
            module.model_copy(
                update={
                    "id": module_id,
                    "duration_seconds": duration,
                    "shot_count": budget_math.shot_count(duration),
                    "sort_order": module.sort_order if module.sort_order is not None else position,
                    "shots": [],
                }
            )
        )
        shots.extend(map_shots(module.shots, module_id))
        editing += budget_math.editing_hours(duration, editing_per_30s)

    line_items = [
        item.model_copy(
            update={
                "total_hours": budget_math.round_hours(item.hours_each * item.quantity),
                "sort_order": item.sort_order if item.sort_order is not None else idx,
            }
        )
        for idx, item in enumerate(payload.line_items)
    ]

    pool_hours, pool_amount = calculate_pool_budget(
        mode,
        hourly_rate,
        payload.duration_seconds,
        hours_per_second,
        payload.pool_budget_hours,
        payload.pool_budget_amount,
    )

    total = (
        budget_math.total_shot_hours(shots)
        + editing
        + budget_math.total_line_item_hours(line_items)
    )

    return VersionRecord(
        id=version_id or str(uuid4()),
        quote_id=quote_id,
        version_number=version_number,
        mode=mode,
        duration_seconds=payload.duration_seconds,
        shot_count=sum(m.shot_count or 0 for m in modules),
        pool_budget_hours=pool_hours,
        pool_budget_amount=pool_amount,
        total_hours=budget_math.round_hours(total),
        hourly_rate=hourly_rate,
        notes=payload.notes,
        created_at=datetime.now(timezone.utc),
        shots=shots,
        modules=modules,
        line_items=line_items,
    )


class BaseVersionStore(ABC):
    """Abstract base class for version stores."""

    async def start(self) -> None:
        """Called on application startup. Override for index creation."""
        pass

    async def stop(self) -> None:
        """Called on application shutdown. Override to release connections."""
        pass

    @abstractmethod
    async def save_version(
        self,
        quote_id: str,
        payload: VersionPayload,
        rate_card: Optional[RateCard] = None,
        version_id: Optional[str] = None,
    ) -> VersionRecord:
        """Create a new version, or overwrite `version_id`."""
        pass

    @abstractmethod
    async def get_version(self, version_id: str) -> Optional[VersionRecord]:
        pass

    @abstractmethod
    async def list_versions(self, quote_id: str) -> list[VersionRecord]:
        """Versions of a quote, oldest first."""
        pass

    @abstractmethod
    async def delete_version(self, version_id: str) -> bool:
        pass


class InMemoryVersionStore(BaseVersionStore):
    """In-memory version store.

    Safe for concurrent access via an asyncio lock. Versions are lost on
    restart.
    """

    def __init__(self):
        self._versions: dict[str, VersionRecord] = {}
        self._lock = asyncio.Lock()

    async def save_version(
        self,
        quote_id: str,
        payload: VersionPayload,
        rate_card: Optional[RateCard] = None,
        version_id: Optional[str] = None,
    ) -> VersionRecord:
        validate_payload(payload)
        async with self._lock:
            if version_id is not None:
                existing = self._versions.get(version_id)
                if existing is None:
                    raise VersionNotFoundError(version_id)
                record = build_version_record(
                    existing.quote_id,
                    payload,
                    rate_card,
                    version_id=version_id,
                    version_number=existing.version_number,
                    default_mode=existing.mode,
                )
                record.created_at = existing.created_at
            else:
                numbers = [
                    v.version_number for v in self._versions.values() if v.quote_id == quote_id
                ]
                record = build_version_record(
                    quote_id, payload, rate_card, version_number=max(numbers, default=0) + 1
                )
            self._versions[record.id] = record

        logger.debug(f"Stored version {record.id} (quote {record.quote_id} v{record.version_number})")
        return record

    async def get_version(self, version_id: str) -> Optional[VersionRecord]:
        async with self._lock:
            return self._versions.get(version_id)

    async def list_versions(self, quote_id: str) -> list[VersionRecord]:
        async with self._lock:
            versions = [v for v in self._versions.values() if v.quote_id == quote_id]
        versions.sort(key=lambda v: v.version_number)
        return versions

    async def delete_version(self, version_id: str) -> bool:
        async with self._lock:
            if version_id in self._versions:
                del self._versions[version_id]
                logger.debug(f"Deleted version {version_id}")
                return True
            return False

    def __len__(self) -> int:
        return len(self._versions)


class MongoVersionStore(BaseVersionStore):
    """MongoDB-backed version store."""

    def __init__(self):
        self._index_created = False

    async def start(self) -> None:
        await self._ensure_indexes()

    async def stop(self) -> None:
        from quote_engine.db.mongo import close_database
        await close_database()
        self._index_created = False
        logger.info("MongoDB version store closed")

    async def _get_collection(self):
        from quote_engine.db.mongo import get_collection
        return await get_collection(VERSIONS_COLLECTION)

    async def _ensure_indexes(self) -> None:
        if self._index_created:
            return

        try:
            collection = await self._get_collection()
            await collection.create_index("id", unique=True)
            await collection.create_index([("quote_id", 1), ("version_number", 1)])
            self._index_created = True
            logger.info("MongoDB version store indexes created")
        except Exception as e:
            logger.warning(f"Failed to create MongoDB version indexes: {e}")

    def _record_to_doc(self, record: VersionRecord) -> dict:
        doc = record.model_dump(mode="json")
        doc["created_at"] = record.created_at
        return doc

    def _doc_to_record(self, doc: dict) -> VersionRecord:
        doc = {k: v for k, v in doc.items() if k != "_id"}
        return VersionRecord.model_validate(doc)

    async def save_version(
        self,
        quote_id: str,
        payload: VersionPayload,
        rate_card: Optional[RateCard] = None,
        version_id: Optional[str] = None,
    ) -> VersionRecord:
        validate_payload(payload)
        await self._ensure_indexes()
        collection = await self._get_collection()

        if version_id is not None:
            doc = await collection.find_one({"id": version_id})
            if not doc:
                raise VersionNotFoundError(version_id)
            existing = self._doc_to_record(doc)
            record = build_version_record(
                existing.quote_id,
                payload,
                rate_card,
                version_id=version_id,
                version_number=existing.version_number,
                default_mode=existing.mode,
            )
            record.created_at = existing.created_at
            await collection.replace_one({"id": version_id}, self._record_to_doc(record))
        else:
            latest = await collection.find_one(
                {"quote_id": quote_id}, sort=[("version_number", -1)]
            )
            next_number = (latest["version_number"] if latest else 0) + 1
            record = build_version_record(quote_id, payload, rate_card, version_number=next_number)
            await collection.insert_one(self._record_to_doc(record))

        logger.debug(f"Stored version {record.id} in MongoDB")
        return record

    async def get_version(self, version_id: str) -> Optional[VersionRecord]:
        collection = await self._get_collection()
        doc = await collection.find_one({"id": version_id})
        if not doc:
            return None
        return self._doc_to_record(doc)

    async def list_versions(self, quote_id: str) -> list[VersionRecord]:
        collection = await self._get_collection()
        cursor = collection.find({"quote_id": quote_id}).sort("version_number", 1)
        return [self._doc_to_record(doc) async for doc in cursor]

    async def delete_version(self, version_id: str) -> bool:
        collection = await self._get_collection()
        result = await collection.delete_one({"id": version_id})
        deleted = result.deleted_count > 0
        if deleted:
            logger.debug(f"Deleted version {version_id} from MongoDB")
        return deleted


# Module-level singleton instance
_version_store: Optional[BaseVersionStore] = None


def get_version_store() -> BaseVersionStore:
    """Get the default version store singleton.

    The backend is chosen by VERSION_STORE_BACKEND.
    """
    global _version_store
    if _version_store is None:
        if config.VERSION_STORE_BACKEND == "mongo":
            _version_store = MongoVersionStore()
            logger.info("Using MongoDB version store")
        else:
            _version_store = InMemoryVersionStore()
            logger.info("Using in-memory version store")
    return _version_store


def set_version_store(store: Optional[BaseVersionStore]) -> None:
    """Set the version store instance (for testing)."""
    global _version_store
    _version_store = store
