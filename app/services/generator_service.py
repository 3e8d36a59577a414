"""
Persistence of generator listings
"""

import logging
import re
from datetime import datetime, UTC
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from app.exceptions import DuplicateListingError, InvalidStatusTransitionError, ListingNotFoundError
from app.models.generator import Generator
from app.models.status_enums import GeneratorStatus, ReviewAction
from app.utils.listing_fields import generate_tags

logger = logging.getLogger(__name__)

TAG_SOURCE_FIELDS = ("brand", "model", "location_text")
EDITABLE_FIELDS = ("brand", "model", "price", "hours_run", "location_text", "description")


def generator_from_document(doc: Dict[str, Any]) -> Generator:
    doc = dict(doc)
    doc["id"] = str(doc.pop("_id"))
    doc["seller_id"] = str(doc["seller_id"])
    return Generator(**doc)


def generator_to_document(generator: Generator) -> Dict[str, Any]:
    doc = generator.model_dump(exclude={"id"})
    doc["seller_id"] = ObjectId(generator.seller_id)
    return doc


def empty_status_counts() -> Dict[str, int]:
    return {status.value: 0 for status in GeneratorStatus}


class GeneratorService:
    """Service for storing listings and moving them through their lifecycle"""

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self.collection = db.generators

    async def create_generator(self, generator: Generator) -> Generator:
        """Insert a new listing; tags are derived here, before the write"""
        generator.tags = generate_tags(generator.brand, generator.model, generator.location_text)
        try:
            result = await self.collection.insert_one(generator_to_document(generator))
        except DuplicateKeyError as e:
            message_id = generator.audit_trail.whatsapp_message_id
            raise DuplicateListingError(
                f"Listing for WhatsApp message {message_id} already exists", whatsapp_message_id=message_id
            ) from e

        generator.id = str(result.inserted_id)
        return generator

    async def get_generator(self, generator_id: str) -> Optional[Generator]:
        if not ObjectId.is_valid(generator_id):
            return None
        doc = await self.collection.find_one({"_id": ObjectId(generator_id)})
        return generator_from_document(doc) if doc else None

    async def find_by_message_id(self, whatsapp_message_id: str) -> Optional[Generator]:
        """Look up the listing created from a given WhatsApp message"""
        doc = await self.collection.find_one({"audit_trail.whatsapp_message_id": whatsapp_message_id})
        return generator_from_document(doc) if doc else None

    async def mark_as_sold(self, generator_id: str, sold_price: Optional[float] = None) -> Optional[Generator]:
        """Move a for_sale listing to sold; None if it was not for_sale any more"""
        update: Dict[str, Any] = {"status": GeneratorStatus.SOLD.value, "sold_date": datetime.now(UTC)}
        if sold_price:
            update["sold_price"] = sold_price
        update["updated_at"] = update["sold_date"]

        doc = await self.collection.find_one_and_update(
            {"_id": ObjectId(generator_id), "status": GeneratorStatus.FOR_SALE.value},
            {"$set": update},
            return_document=ReturnDocument.AFTER,
        )
        return generator_from_document(doc) if doc else None

    async def review_generator(
        self,
        generator_id: str,
        action: ReviewAction,
        reason: Optional[str] = None,
        approved_by: Optional[str] = None,
    ) -> Generator:
        """Approve or reject a listing that is pending review"""
        current = await self.get_generator(generator_id)
        if current is None:
            raise ListingNotFoundError(f"Generator {generator_id} not found")
        if current.status != GeneratorStatus.PENDING_REVIEW:
            raise InvalidStatusTransitionError("Generator is not pending review", current_status=current.status.value)

        now = datetime.now(UTC)
        if action == ReviewAction.APPROVE:
            update = {
                "status": GeneratorStatus.FOR_SALE.value,
                "audit_trail.approved_by": approved_by,
                "audit_trail.approved_at": now,
            }
        else:
            update = {
                "status": GeneratorStatus.REJECTED.value,
                "audit_trail.rejected_reason": reason or "No reason provided",
            }
        update["updated_at"] = now

        doc = await self.collection.find_one_and_update(
            {"_id": ObjectId(generator_id), "status": GeneratorStatus.PENDING_REVIEW.value},
            {"$set": update},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            # Status changed between the read and the conditional update
            raise InvalidStatusTransitionError("Generator is not pending review")

        logger.info("Generator %s %s", generator_id, "approved" if action == ReviewAction.APPROVE else "rejected")
        return generator_from_document(doc)

    async def update_details(self, generator_id: str, updates: Dict[str, Any]) -> Generator:
        """Correct listing details; tags follow brand, model and location"""
        current = await self.get_generator(generator_id)
        if current is None:
            raise ListingNotFoundError(f"Generator {generator_id} not found")

        changes = {k: v for k, v in updates.items() if k in EDITABLE_FIELDS}
        merged = current.model_copy(update=changes)
        # re-run model validation on the corrected listing
        merged = Generator.model_validate(merged.model_dump())

        if any(field in changes for field in TAG_SOURCE_FIELDS):
            changes["tags"] = generate_tags(merged.brand, merged.model, merged.location_text)
        changes["updated_at"] = datetime.now(UTC)

        doc = await self.collection.find_one_and_update(
            {"_id": ObjectId(generator_id)}, {"$set": changes}, return_document=ReturnDocument.AFTER
        )
        if doc is None:
            raise ListingNotFoundError(f"Generator {generator_id} not found")
        return generator_from_document(doc)

    async def _increment(self, generator_id: str, field: str) -> Optional[int]:
        if not ObjectId.is_valid(generator_id):
            return None
        doc = await self.collection.find_one_and_update(
            {"_id": ObjectId(generator_id)},
            {"$inc": {field: 1}},
            projection={field: 1},
            return_document=ReturnDocument.AFTER,
        )
        return doc[field] if doc else None

    async def increment_views(self, generator_id: str) -> None:
        """Best-effort view counter; failures are logged and dropped"""
        try:
            await self._increment(generator_id, "views")
        except Exception as e:
            logger.warning("Could not count view for generator %s: %s", generator_id, e)

    async def increment_whatsapp_clicks(self, generator_id: str) -> Optional[int]:
        return await self._increment(generator_id, "whatsapp_clicks")

    async def list_generators(
        self, status: Optional[str] = None, search: Optional[str] = None, page: int = 1, limit: int = 10
    ) -> Tuple[List[Generator], int]:
        """Paginated listings, newest first"""
        query: Dict[str, Any] = {}
        if status and status != "all":
            query["status"] = status
        if search:
            pattern = {"$regex": re.escape(search), "$options": "i"}
            query["$or"] = [
                {"brand": pattern},
                {"model": pattern},
                {"location_text": pattern},
                {"description": pattern},
            ]

        skip = (page - 1) * limit
        cursor = self.collection.find(query).sort("created_at", DESCENDING).skip(skip).limit(limit)
        items = [generator_from_document(doc) async for doc in cursor]
        total = await self.collection.count_documents(query)
        return items, total

    async def get_status_counts(self) -> Dict[str, int]:
        counts = empty_status_counts()
        async for row in self.collection.aggregate([{"$group": {"_id": "$status", "count": {"$sum": 1}}}]):
            if row["_id"] in counts:
                counts[row["_id"]] = row["count"]
        return counts

    async def get_sold_workflow_stats(self, seller_id: Optional[str] = None) -> Dict[str, Any]:
        """Listing counts and total asking value per status"""
        match = {"seller_id": ObjectId(seller_id)} if seller_id else {}
        pipeline = [
            {"$match": match},
            {"$group": {"_id": "$status", "count": {"$sum": 1}, "total_value": {"$sum": "$price"}}},
        ]

        stats: Dict[str, Any] = {"total": 0, **empty_status_counts(), "total_value": empty_status_counts()}
        async for row in self.collection.aggregate(pipeline):
            status = row["_id"]
            stats[status] = row["count"]
            stats["total"] += row["count"]
            stats["total_value"][status] = row["total_value"]
        return stats

    async def get_recent_sold(self, limit: int = 10) -> List[Generator]:
        cursor = (
            self.collection.find({"status": GeneratorStatus.SOLD.value})
            .sort("sold_date", DESCENDING)
            .limit(limit)
        )
        return [generator_from_document(doc) async for doc in cursor]
