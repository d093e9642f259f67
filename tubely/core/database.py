import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

logger = logging.getLogger(__name__)


class MongoDB:
    """Owns one motor client; opened at app startup, closed at shutdown."""

    def __init__(self, uri: str, db_name: str):
        self.uri = uri
        self.db_name = db_name
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None

    @property
    def connected(self) -> bool:
        return self.db is not None

    def connect(self) -> None:
        if self.connected:
            return
        self.client = AsyncIOMotorClient(self.uri)
        self.db = self.client[self.db_name]
        logger.info("Connected to MongoDB: %s", self.db_name)

    def close(self) -> None:
        if self.client is not None:
            self.client.close()
        self.client = None
        self.db = None
        logger.info("MongoDB connection closed")
