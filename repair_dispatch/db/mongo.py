from __future__ import annotations

import logging
from pathlib import Path

from dotenv import load_dotenv
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING

from repair_dispatch.core.config import Settings

# .env sits in the project root (same level as "repair_dispatch/")
load_dotenv(Path(__file__).resolve().parents[2] / ".env")

logger = logging.getLogger(__name__)

SPECIALISTS = "specialists"
SERVICE_REQUESTS = "service_requests"
REGISTRATION_SESSIONS = "registration_sessions"
AUDIT_LOGS = "audit_logs"


class Mongo:
    def __init__(self):
        self.client: AsyncIOMotorClient | None = None
        self._db: AsyncIOMotorDatabase | None = None

    @property
    def db(self) -> AsyncIOMotorDatabase:
        if self._db is None:
            raise RuntimeError("MongoDB is not connected")
        return self._db

    def connect(self, settings: Settings) -> None:
        if not settings.mongo_uri:
            raise RuntimeError("Missing MONGO_URI")
        self.client = AsyncIOMotorClient(settings.mongo_uri)
        self._db = self.client[settings.mongo_db]
        logger.info("Connected to MongoDB database %s", settings.mongo_db)

    def close(self) -> None:
        if self.client is not None:
            self.client.close()
        self.client = None
        self._db = None


mongo = Mongo()


async def ensure_indexes(db: AsyncIOMotorDatabase, session_ttl_seconds: int) -> None:
    await db[SPECIALISTS].create_index("telegram_id", unique=True)
    await db[SPECIALISTS].create_index(
        [("specialization", ASCENDING), ("active", ASCENDING)]
    )
    await db[SERVICE_REQUESTS].create_index("status")
    await db[REGISTRATION_SESSIONS].create_index("identity", unique=True)
    await db[REGISTRATION_SESSIONS].create_index(
        "updated_at", expireAfterSeconds=session_ttl_seconds
    )
    await db[AUDIT_LOGS].create_index([("time", ASCENDING)])


def get_db() -> AsyncIOMotorDatabase:
    """
    FastAPI dependency that returns Mongo database instance
    """
    return mongo.db
