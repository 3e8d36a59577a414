import logging

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, TEXT

logger = logging.getLogger(__name__)


async def init_database(db: AsyncIOMotorDatabase) -> None:
    """Initialize database with collections and indexes"""
    try:
        # users collection
        await db.users.create_index("whatsapp_id", unique=True)
        await db.users.create_index("role")

        # generators collection
        # one listing per inbound WhatsApp message; reprocessing a payload fails here
        await db.generators.create_index("audit_trail.whatsapp_message_id", unique=True)
        await db.generators.create_index("status")
        await db.generators.create_index("seller_id")
        await db.generators.create_index("brand")
        await db.generators.create_index("price")
        await db.generators.create_index("hours_run")
        await db.generators.create_index("tags")
        await db.generators.create_index([("created_at", DESCENDING)])
        await db.generators.create_index([("status", ASCENDING), ("sold_date", DESCENDING)])
        await db.generators.create_index(
            [
                ("brand", TEXT),
                ("model", TEXT),
                ("description", TEXT),
                ("location_text", TEXT),
                ("tags", TEXT),
            ]
        )

        logger.info("Database indexes created successfully")

    except Exception as e:
        logger.error("Error initializing database: %s", e)
        raise
