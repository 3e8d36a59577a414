"""
Tests for listing persistence and lifecycle transitions
"""

from datetime import datetime, UTC
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from app.exceptions import DuplicateListingError, InvalidStatusTransitionError, ListingNotFoundError
from app.models.generator import AuditTrail, Generator
from app.models.status_enums import GeneratorStatus, ReviewAction
from app.services.generator_service import GeneratorService, generator_to_document

SELLER_ID = str(ObjectId())


@pytest.fixture
def collection():
    collection = MagicMock()
    collection.insert_one = AsyncMock()
    collection.find_one = AsyncMock(return_value=None)
    collection.find_one_and_update = AsyncMock(return_value=None)
    return collection


@pytest.fixture
def service(collection):
    db = MagicMock()
    db.generators = collection
    return GeneratorService(db)


def new_generator(**overrides) -> Generator:
    data = {
        "brand": "Kirloskar",
        "model": "KG1-62.5AS",
        "price": 850000,
        "hours_run": 12500,
        "location_text": "Mumbai, Maharashtra",
        "seller_id": SELLER_ID,
        "audit_trail": AuditTrail(whatsapp_message_id="wamid.1"),
    }
    data.update(overrides)
    return Generator(**data)


def stored(generator: Generator, **overrides):
    doc = generator_to_document(generator)
    doc["_id"] = ObjectId()
    doc.update(overrides)
    return doc


class TestCreateGenerator:

    @pytest.mark.asyncio
    async def test_tags_computed_before_insert(self, service, collection):
        inserted_id = ObjectId()
        collection.insert_one.return_value = MagicMock(inserted_id=inserted_id)

        generator = await service.create_generator(new_generator())

        assert generator.id == str(inserted_id)
        document = collection.insert_one.await_args.args[0]
        assert document["tags"] == ["kirloskar", "kg1-62.5as", "mumbai", "maharashtra"]
        assert document["seller_id"] == ObjectId(SELLER_ID)
        assert document["audit_trail"]["whatsapp_message_id"] == "wamid.1"

    @pytest.mark.asyncio
    async def test_duplicate_message_id(self, service, collection):
        collection.insert_one.side_effect = DuplicateKeyError("E11000 duplicate key")

        with pytest.raises(DuplicateListingError) as exc_info:
            await service.create_generator(new_generator())

        assert exc_info.value.whatsapp_message_id == "wamid.1"


class TestGeneratorModel:

    def test_incomplete_listing_needs_failed_parsing(self):
        with pytest.raises(ValueError):
            new_generator(brand="", price=0)

        generator = new_generator(brand="", price=0, status=GeneratorStatus.FAILED_PARSING)
        assert generator.brand == ""

    def test_limits(self):
        with pytest.raises(ValueError):
            new_generator(brand="X" * 51)
        with pytest.raises(ValueError):
            new_generator(hours_run=-1)


class TestLookups:

    @pytest.mark.asyncio
    async def test_find_by_message_id(self, service, collection):
        doc = stored(new_generator())
        collection.find_one.return_value = doc

        generator = await service.find_by_message_id("wamid.1")

        assert generator.id == str(doc["_id"])
        assert generator.seller_id == SELLER_ID
        collection.find_one.assert_awaited_once_with({"audit_trail.whatsapp_message_id": "wamid.1"})

    @pytest.mark.asyncio
    async def test_get_generator_invalid_id(self, service, collection):
        assert await service.get_generator("not-an-object-id") is None
        collection.find_one.assert_not_awaited()


class TestMarkAsSold:

    @pytest.mark.asyncio
    async def test_conditional_on_for_sale(self, service, collection):
        doc = stored(new_generator(status=GeneratorStatus.FOR_SALE), status="sold", sold_date=datetime.now(UTC))
        collection.find_one_and_update.return_value = doc

        generator = await service.mark_as_sold(str(doc["_id"]))

        assert generator.status == GeneratorStatus.SOLD
        query, update = collection.find_one_and_update.await_args.args
        assert query == {"_id": doc["_id"], "status": "for_sale"}
        assert update["$set"]["status"] == "sold"
        assert "sold_price" not in update["$set"]

    @pytest.mark.asyncio
    async def test_not_for_sale_returns_none(self, service, collection):
        assert await service.mark_as_sold(str(ObjectId()), sold_price=700000) is None
        assert collection.find_one_and_update.await_args.args[1]["$set"]["sold_price"] == 700000


class TestReviewGenerator:

    @pytest.mark.asyncio
    async def test_approve(self, service, collection):
        pending = stored(new_generator())
        collection.find_one.return_value = pending
        collection.find_one_and_update.return_value = {**pending, "status": "for_sale"}

        generator = await service.review_generator(str(pending["_id"]), ReviewAction.APPROVE, approved_by="admin")

        assert generator.status == GeneratorStatus.FOR_SALE
        update = collection.find_one_and_update.await_args.args[1]["$set"]
        assert update["audit_trail.approved_by"] == "admin"
        assert isinstance(update["audit_trail.approved_at"], datetime)

    @pytest.mark.asyncio
    async def test_reject_default_reason(self, service, collection):
        pending = stored(new_generator())
        collection.find_one.return_value = pending
        collection.find_one_and_update.return_value = {**pending, "status": "rejected"}

        await service.review_generator(str(pending["_id"]), ReviewAction.REJECT)

        update = collection.find_one_and_update.await_args.args[1]["$set"]
        assert update["status"] == "rejected"
        assert update["audit_trail.rejected_reason"] == "No reason provided"

    @pytest.mark.asyncio
    async def test_only_pending_listings(self, service, collection):
        collection.find_one.return_value = stored(new_generator(status=GeneratorStatus.FOR_SALE))

        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            await service.review_generator(str(ObjectId()), ReviewAction.APPROVE)

        assert exc_info.value.current_status == "for_sale"
        collection.find_one_and_update.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_listing(self, service):
        with pytest.raises(ListingNotFoundError):
            await service.review_generator(str(ObjectId()), ReviewAction.APPROVE)


class TestUpdateDetails:

    @pytest.mark.asyncio
    async def test_tags_follow_brand(self, service, collection):
        doc = stored(new_generator())
        collection.find_one.return_value = doc
        collection.find_one_and_update.return_value = {**doc, "brand": "Cummins"}

        await service.update_details(str(doc["_id"]), {"brand": "Cummins", "status": "sold"})

        changes = collection.find_one_and_update.await_args.args[1]["$set"]
        assert changes["brand"] == "Cummins"
        assert changes["tags"][0] == "cummins"
        assert "status" not in changes

    @pytest.mark.asyncio
    async def test_price_change_keeps_tags(self, service, collection):
        doc = stored(new_generator())
        collection.find_one.return_value = doc
        collection.find_one_and_update.return_value = {**doc, "price": 800000}

        await service.update_details(str(doc["_id"]), {"price": 800000})

        assert "tags" not in collection.find_one_and_update.await_args.args[1]["$set"]

    @pytest.mark.asyncio
    async def test_invalid_correction_rejected(self, service, collection):
        collection.find_one.return_value = stored(new_generator())

        with pytest.raises(ValueError):
            await service.update_details(str(ObjectId()), {"price": -5})

        collection.find_one_and_update.assert_not_awaited()


class TestCounters:

    @pytest.mark.asyncio
    async def test_contact_click(self, service, collection):
        collection.find_one_and_update.return_value = {"_id": ObjectId(), "whatsapp_clicks": 4}

        assert await service.increment_whatsapp_clicks(str(ObjectId())) == 4

    @pytest.mark.asyncio
    async def test_view_count_failure_is_swallowed(self, service, collection):
        collection.find_one_and_update.side_effect = RuntimeError("mongo down")

        await service.increment_views(str(ObjectId()))
