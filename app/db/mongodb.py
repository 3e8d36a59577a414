import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

logger = logging.getLogger(__name__)


class MongoDB:
    """Owns the Motor client for one process; created at startup, closed at shutdown"""

    def __init__(self, url: str, database_name: Optional[str] = None) -> None:
        self.url = url
        self.database_name = database_name
        self.client: Optional[AsyncIOMotorClient] = None

    async def connect_to_mongo(self) -> None:
        """Create database connection"""
        self.client = AsyncIOMotorClient(self.url, tz_aware=True)
        logger.info("Connected to MongoDB")

    async def close_mongo_connection(self) -> None:
        """Close database connection"""
        if self.client:
            self.client.close()
            self.client = None
        logger.info("Disconnected from MongoDB")

    async def ping(self) -> None:
        await self.client.admin.command("ping")

    def get_database(self) -> AsyncIOMotorDatabase:
        """Get database instance"""
        if self.client is None:
            raise RuntimeError("MongoDB client is not connected")
        if self.database_name:
            return self.client[self.database_name]
        return self.client.get_database()
