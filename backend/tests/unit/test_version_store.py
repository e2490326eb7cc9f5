"""Unit tests for version store implementations.

Tests cover:
- Shot mapping and pool budget rules
- Payload validation limits
- InMemoryVersionStore operations
- MongoVersionStore operations
- Store singleton selection
"""

from unittest.mock import MagicMock

import pytest
import pytest_asyncio

from quote_engine.db import mongo
from quote_engine.exceptions import ValidationError, VersionNotFoundError
from quote_engine.models import (
    MAX_NOTES_LENGTH,
    MAX_SHOT_QUANTITY,
    QuoteMode,
    VersionLineItem,
    VersionModule,
    VersionPayload,
    VersionShot,
)
from quote_engine.services import QuoteBuilder
from quote_engine.services import version_store as store_module
from quote_engine.services.version_store import (
    VERSIONS_COLLECTION,
    InMemoryVersionStore,
    MongoVersionStore,
    build_version_record,
    calculate_pool_budget,
    get_version_store,
    map_shots,
    set_version_store,
    validate_payload,
)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def in_memory_store():
    """Fresh in-memory version store for testing."""
    return InMemoryVersionStore()


@pytest_asyncio.fixture
async def mongo_store(mock_db):
    """MongoDB version store with mock backend."""
    return MongoVersionStore()


@pytest.fixture
def payload():
    """Single-film payload with flat shot rows."""
    return VersionPayload(
        mode=QuoteMode.retainer,
        duration_seconds=60,
        shots=[
            VersionShot(shot_type="Wide", percentage=40, quantity=6, base_hours_each=3),
            VersionShot(shot_type="Close", percentage=60, quantity=9, base_hours_each=2),
        ],
    )


# =============================================================================
# Pure helpers
# =============================================================================

class TestMapShots:
    def test_missing_quantity_stays_zero(self):
        shots = map_shots([VersionShot.model_validate({"shot_type": "Wide", "base_hours_each": 3})])
        assert shots[0].quantity == 0
        assert shots[0].adjusted_hours == 0

    def test_blank_quantity_stays_zero(self):
        row = VersionShot.model_validate(
            {"shot_type": "Wide", "quantity": "", "base_hours_each": "3"}
        )
        shots = map_shots([row])
        assert shots[0].quantity == 0
        assert shots[0].adjusted_hours == 0

    def test_adjusted_hours_recomputed(self):
        row = VersionShot(
            shot_type="Wide",
            quantity=4,
            base_hours_each=2.5,
            efficiency_multiplier=1.5,
            adjusted_hours=999,
        )
        assert map_shots([row])[0].adjusted_hours == 15

    def test_defaults(self):
        rows = [VersionShot(shot_type="A"), VersionShot(shot_type="B", sort_order=7)]
        shots = map_shots(rows, module_id="mod-1")
        assert [s.sort_order for s in shots] == [0, 7]
        assert all(s.module_id == "mod-1" for s in shots)
        assert all(s.percentage == 0 for s in shots)


class TestCalculatePoolBudget:
    def test_retainer_has_no_pool(self):
        assert calculate_pool_budget(QuoteMode.retainer, 100, 60, 1) == (None, None)

    def test_derived_from_duration(self):
        assert calculate_pool_budget(QuoteMode.budget, 100, 60, 1.5) == (90, 9000)

    def test_explicit_amount(self):
        assert calculate_pool_budget(QuoteMode.budget, 100, 60, 1, pool_budget_amount=5000) == (
            50,
            5000,
        )

    def test_explicit_hours_win(self):
        hours, amount = calculate_pool_budget(
            QuoteMode.budget, 100, 60, 1, pool_budget_hours=20, pool_budget_amount=5000
        )
        assert (hours, amount) == (20, 5000)

    def test_explicit_hours_without_amount(self):
        assert calculate_pool_budget(QuoteMode.budget, 100, 60, 1, pool_budget_hours=20) == (
            20,
            2000,
        )


class TestValidatePayload:
    def test_notes_too_long(self, payload):
        payload.notes = "x" * (MAX_NOTES_LENGTH + 1)
        with pytest.raises(ValidationError, match="notes"):
            validate_payload(payload)

    def test_too_many_shots(self, payload):
        payload.modules = [
            VersionModule(shots=[VersionShot(shot_type=f"S{i}") for i in range(101)])
        ]
        with pytest.raises(ValidationError, match="modules.0.shots"):
            validate_payload(payload)

    def test_valid(self, payload):
        validate_payload(payload)

    def test_quantity_over_limit(self, payload):
        payload.shots[1].quantity = MAX_SHOT_QUANTITY + 1
        with pytest.raises(ValidationError, match="modules.0.shots.1.quantity"):
            validate_payload(payload)

    def test_quantity_at_limit(self, payload):
        payload.shots[0].quantity = MAX_SHOT_QUANTITY
        validate_payload(payload)


class TestBuildVersionRecord:
    def test_single_film_payload(self, payload, rate_card):
        record = build_version_record("quote-1", payload, rate_card)

        assert record.quote_id == "quote-1"
        assert record.shot_count == 15
        assert len(record.modules) == 1
        module = record.modules[0]
        assert module.duration_seconds == 60
        assert module.shots == []
        assert all(s.module_id == module.id for s in record.shots)
        # 18 + 18 shot hours, 4 editing hours
        assert record.total_hours == 40
        assert record.hourly_rate == 120
        assert record.created_at is not None

    def test_multi_module_payload(self, rate_card):
        payload = VersionPayload(
            duration_seconds=90,
            modules=[
                VersionModule(
                    id="a",
                    duration_seconds=60,
                    shots=[VersionShot(shot_type="Wide", quantity=2, base_hours_each=3)],
                ),
                VersionModule(
                    id="b",
                    duration_seconds=30,
                    shots=[VersionShot(shot_type="Close", quantity=1, base_hours_each=2)],
                ),
            ],
        )
        record = build_version_record("quote-1", payload, rate_card)

        assert [m.shot_count for m in record.modules] == [15, 8]
        assert record.shot_count == 23
        assert [s.module_id for s in record.shots] == ["a", "b"]
        # 6 + 2 shot hours, 4 + 2 editing hours
        assert record.total_hours == 14

    def test_line_items_totalled(self, payload):
        payload.line_items = [VersionLineItem(name="Creative Direction", hours_each=6, quantity=2)]
        record = build_version_record("quote-1", payload)
        assert record.line_items[0].total_hours == 12
        assert record.total_hours == 36 + 12

    def test_budget_pool(self, payload, rate_card):
        payload.mode = QuoteMode.budget
        record = build_version_record("quote-1", payload, rate_card)
        assert record.pool_budget_hours == 60
        assert record.pool_budget_amount == 7200


# =============================================================================
# InMemoryVersionStore
# =============================================================================

class TestInMemoryVersionStore:
    @pytest.mark.asyncio
    async def test_save_and_get(self, in_memory_store, payload):
        record = await in_memory_store.save_version("quote-1", payload)
        assert record.version_number == 1

        fetched = await in_memory_store.get_version(record.id)
        assert fetched == record

    @pytest.mark.asyncio
    async def test_version_numbers_per_quote(self, in_memory_store, payload):
        first = await in_memory_store.save_version("quote-1", payload)
        second = await in_memory_store.save_version("quote-1", payload)
        other = await in_memory_store.save_version("quote-2", payload)

        assert (first.version_number, second.version_number) == (1, 2)
        assert other.version_number == 1

        versions = await in_memory_store.list_versions("quote-1")
        assert [v.id for v in versions] == [first.id, second.id]

    @pytest.mark.asyncio
    async def test_update_keeps_number_and_created_at(self, in_memory_store, payload):
        first = await in_memory_store.save_version("quote-1", payload)
        payload.notes = "revised"
        updated = await in_memory_store.save_version("quote-1", payload, version_id=first.id)

        assert updated.id == first.id
        assert updated.version_number == 1
        assert updated.created_at == first.created_at
        assert updated.notes == "revised"
        assert len(in_memory_store) == 1

    @pytest.mark.asyncio
    async def test_update_missing_version(self, in_memory_store, payload):
        with pytest.raises(VersionNotFoundError) as exc_info:
            await in_memory_store.save_version("quote-1", payload, version_id="nope")
        assert exc_info.value.version_id == "nope"

    @pytest.mark.asyncio
    async def test_rejects_invalid_payload(self, in_memory_store, payload):
        payload.notes = "x" * (MAX_NOTES_LENGTH + 1)
        with pytest.raises(ValidationError):
            await in_memory_store.save_version("quote-1", payload)
        assert len(in_memory_store) == 0

    @pytest.mark.asyncio
    async def test_rejects_builder_payload_over_quantity_limit(
        self, in_memory_store, rate_card, existing_version
    ):
        builder = QuoteBuilder.from_version(existing_version, rate_card)
        builder.update_quantity(0, MAX_SHOT_QUANTITY + 1)

        with pytest.raises(ValidationError, match="quantity"):
            await in_memory_store.save_version("quote-1", builder.get_payload())
        assert len(in_memory_store) == 0

    @pytest.mark.asyncio
    async def test_delete(self, in_memory_store, payload):
        record = await in_memory_store.save_version("quote-1", payload)
        assert await in_memory_store.delete_version(record.id) is True
        assert await in_memory_store.delete_version(record.id) is False
        assert await in_memory_store.get_version(record.id) is None

    @pytest.mark.asyncio
    async def test_stop_keeps_versions(self, in_memory_store, payload):
        await in_memory_store.save_version("quote-1", payload)
        await in_memory_store.stop()
        assert len(in_memory_store) == 1


# =============================================================================
# MongoVersionStore
# =============================================================================

class TestMongoVersionStore:
    @pytest.mark.asyncio
    async def test_save_and_get(self, mongo_store, mock_db, payload, rate_card):
        record = await mongo_store.save_version("quote-1", payload, rate_card=rate_card)

        fetched = await mongo_store.get_version(record.id)
        assert fetched is not None
        assert fetched.version_number == 1
        assert fetched.total_hours == 40
        assert [s.quantity for s in fetched.shots] == [6, 9]

        doc = await mock_db[VERSIONS_COLLECTION].find_one({"id": record.id})
        assert doc["quote_id"] == "quote-1"

    @pytest.mark.asyncio
    async def test_version_numbers_increment(self, mongo_store, payload):
        await mongo_store.save_version("quote-1", payload)
        second = await mongo_store.save_version("quote-1", payload)
        assert second.version_number == 2

        versions = await mongo_store.list_versions("quote-1")
        assert [v.version_number for v in versions] == [1, 2]

    @pytest.mark.asyncio
    async def test_update(self, mongo_store, payload):
        first = await mongo_store.save_version("quote-1", payload)
        payload.notes = "revised"
        await mongo_store.save_version("quote-1", payload, version_id=first.id)

        versions = await mongo_store.list_versions("quote-1")
        assert len(versions) == 1
        assert versions[0].notes == "revised"
        assert versions[0].version_number == 1

    @pytest.mark.asyncio
    async def test_update_missing_version(self, mongo_store, payload):
        with pytest.raises(VersionNotFoundError):
            await mongo_store.save_version("quote-1", payload, version_id="nope")

    @pytest.mark.asyncio
    async def test_get_missing(self, mongo_store):
        assert await mongo_store.get_version("nope") is None

    @pytest.mark.asyncio
    async def test_delete(self, mongo_store, payload):
        record = await mongo_store.save_version("quote-1", payload)
        assert await mongo_store.delete_version(record.id) is True
        assert await mongo_store.delete_version(record.id) is False

    @pytest.mark.asyncio
    async def test_start_creates_indexes(self, mongo_store):
        await mongo_store.start()
        assert mongo_store._index_created is True

    @pytest.mark.asyncio
    async def test_stop_closes_client(self):
        client = MagicMock()
        mongo.set_client(client)
        store = MongoVersionStore()
        store._index_created = True

        await store.stop()

        client.close.assert_called_once()
        assert mongo._client is None
        assert store._index_created is False

    @pytest.mark.asyncio
    async def test_stop_without_client(self):
        mongo.set_client(None)
        await MongoVersionStore().stop()
        assert mongo._client is None


# =============================================================================
# Singleton
# =============================================================================

class TestVersionStoreSingleton:
    def test_default_is_in_memory(self, monkeypatch):
        monkeypatch.setattr(store_module.config, "VERSION_STORE_BACKEND", "memory")
        set_version_store(None)
        try:
            assert isinstance(get_version_store(), InMemoryVersionStore)
            assert get_version_store() is get_version_store()
        finally:
            set_version_store(None)

    def test_mongo_backend(self, monkeypatch):
        monkeypatch.setattr(store_module.config, "VERSION_STORE_BACKEND", "mongo")
        set_version_store(None)
        try:
            assert isinstance(get_version_store(), MongoVersionStore)
        finally:
            set_version_store(None)

    def test_set_store(self):
        store = InMemoryVersionStore()
        set_version_store(store)
        try:
            assert get_version_store() is store
        finally:
            set_version_store(None)
