"""
User directory: sellers and admins keyed by WhatsApp ID
"""

import logging
from datetime import datetime, UTC
from typing import Any, Dict, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from app.models.user import User, default_display_name

logger = logging.getLogger(__name__)


def user_from_document(doc: Dict[str, Any]) -> User:
    doc = dict(doc)
    doc["id"] = str(doc.pop("_id"))
    return User(**doc)


class UserService:
    """Service for managing marketplace users"""

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self.collection = db.users

    async def get_user(self, user_id: str) -> Optional[User]:
        doc = await self.collection.find_one({"_id": ObjectId(user_id)})
        return user_from_document(doc) if doc else None

    async def get_by_whatsapp_id(self, whatsapp_id: str) -> Optional[User]:
        doc = await self.collection.find_one({"whatsapp_id": whatsapp_id})
        return user_from_document(doc) if doc else None

    async def find_or_create(self, whatsapp_id: str, display_name: Optional[str] = None) -> User:
        """Return the user for ``whatsapp_id``, creating it on first contact.

        An existing user without a display name gets ``display_name`` backfilled.
        """
        user = await self.get_by_whatsapp_id(whatsapp_id)

        if user is None:
            user = User(whatsapp_id=whatsapp_id, display_name=display_name or default_display_name(whatsapp_id))
            document = user.model_dump(exclude={"id"})
            try:
                result = await self.collection.insert_one(document)
            except DuplicateKeyError:
                # Created concurrently by another request; use that record
                existing = await self.get_by_whatsapp_id(whatsapp_id)
                if existing is None:
                    raise
                return existing
            user.id = str(result.inserted_id)
            logger.info("Created user %s for WhatsApp ID ending %s", user.id, whatsapp_id[-4:])
            return user

        if display_name and not user.display_name:
            now = datetime.now(UTC)
            await self.collection.update_one(
                {"_id": ObjectId(user.id)}, {"$set": {"display_name": display_name, "updated_at": now}}
            )
            user.display_name = display_name
            user.updated_at = now

        return user

    async def update_activity(self, user: User) -> User:
        """Touch the user's last activity timestamp"""
        now = datetime.now(UTC)
        await self.collection.update_one(
            {"_id": ObjectId(user.id)}, {"$set": {"last_activity": now, "updated_at": now}}
        )
        user.last_activity = now
        return user

    async def _increment(self, user_id: str, field: str) -> Optional[User]:
        doc = await self.collection.find_one_and_update(
            {"_id": ObjectId(user_id)},
            {"$inc": {field: 1}, "$set": {"updated_at": datetime.now(UTC)}},
            return_document=ReturnDocument.AFTER,
        )
        return user_from_document(doc) if doc else None

    async def increment_total_listings(self, user_id: str) -> Optional[User]:
        return await self._increment(user_id, "total_listings")

    async def increment_successful_sales(self, user_id: str) -> Optional[User]:
        return await self._increment(user_id, "successful_sales")
