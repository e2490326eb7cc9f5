"""Pytest fixtures for testing."""

from collections.abc import AsyncGenerator
from typing import Any

import pytest
import pytest_asyncio
from mongomock_motor import AsyncMongoMockClient

from quote_engine import config
from quote_engine.db import mongo
from quote_engine.models import RateCard, RateCardItem, VersionRecord


@pytest_asyncio.fixture
async def mock_db() -> AsyncGenerator[Any, None]:
    """Provide a mock MongoDB database for testing."""
    mock_client = AsyncMongoMockClient()
    mock_database = mock_client[config.DATABASE_NAME]

    # Replace the real client with mock
    mongo.set_client(mock_client)

    yield mock_database

    # Cleanup
    mongo.set_client(None)


@pytest.fixture
def rate_card() -> RateCard:
    """Rate card with two scene shots, 1 pool hour per second, 2 editing hours per 30s."""
    return RateCard(
        id="rate-1",
        name="Default",
        is_default=True,
        hours_per_second=1,
        editing_hours_per_30s=2,
        hourly_rate=120,
        items=[
            RateCardItem(shot_type="Wide", category="scene", hours=3, sort_order=0),
            RateCardItem(shot_type="Close", category="scene", hours=2, sort_order=1),
        ],
    )


@pytest.fixture
def companion_items() -> list[RateCardItem]:
    """Mixed-category items for companion calculations."""
    return [
        RateCardItem(shot_type="Aerial", category="scene", hours=10, sort_order=0),
        RateCardItem(shot_type="Ground", category="scene", hours=8, sort_order=1),
        RateCardItem(shot_type="VFX Detail", category="post", hours=12, sort_order=2),
        RateCardItem(
            shot_type="Animation from Image (simple)", category="animation", hours=6, sort_order=3
        ),
    ]


@pytest.fixture
def existing_version_data() -> dict[str, Any]:
    """A persisted 60s single-film version: Wide 40% (6), Close 60% (9)."""
    return {
        "id": "version-1",
        "quote_id": "quote-1",
        "version_number": 1,
        "mode": "retainer",
        "duration_seconds": 60,
        "shot_count": 15,
        "pool_budget_hours": None,
        "pool_budget_amount": None,
        "total_hours": 0,
        "hourly_rate": 120,
        "notes": None,
        "modules": [
            {
                "id": "mod-1",
                "name": "Film 1",
                "module_type": "film",
                "duration_seconds": 60,
                "shot_count": 15,
                "animation_complexity": "regular",
                "sort_order": 0,
            }
        ],
        "shots": [
            {
                "id": "shot-1",
                "shot_type": "Wide",
                "percentage": 40,
                "quantity": 6,
                "base_hours_each": 3,
                "efficiency_multiplier": 1,
                "adjusted_hours": 18,
                "sort_order": 0,
                "module_id": "mod-1",
                "is_companion": False,
                "animation_override": None,
            },
            {
                "id": "shot-2",
                "shot_type": "Close",
                "percentage": 60,
                "quantity": 9,
                "base_hours_each": 2,
                "efficiency_multiplier": 1,
                "adjusted_hours": 18,
                "sort_order": 1,
                "module_id": "mod-1",
                "is_companion": False,
                "animation_override": None,
            },
        ],
    }


@pytest.fixture
def existing_version(existing_version_data: dict[str, Any]) -> VersionRecord:
    return VersionRecord.model_validate(existing_version_data)
