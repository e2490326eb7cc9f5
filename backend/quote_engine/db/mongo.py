"""Motor client for the durable version store.

One client per process, created on first use. Tests swap in a mongomock
client with ``set_client``.
"""

import logging

from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
)

from quote_engine import config

logger = logging.getLogger(__name__)

_client: AsyncIOMotorClient | None = None


def _connect() -> AsyncIOMotorClient:
    logger.info(f"Connecting to MongoDB database '{config.DATABASE_NAME}'")
    return AsyncIOMotorClient(
        config.MONGODB_URL,
        serverSelectionTimeoutMS=config.MONGODB_TIMEOUT_MS,
        connectTimeoutMS=config.MONGODB_TIMEOUT_MS,
    )


async def get_database() -> AsyncIOMotorDatabase:
    global _client
    if _client is None:
        _client = _connect()
    return _client[config.DATABASE_NAME]


async def get_collection(name: str) -> AsyncIOMotorCollection:
    db = await get_database()
    return db[name]


async def close_database() -> None:
    global _client
    if _client is not None:
        _client.close()
        _client = None


def set_client(client: AsyncIOMotorClient | None) -> None:
    """Replace the client (for testing)."""
    global _client
    _client = client
