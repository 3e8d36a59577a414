"""
Test utilities: webhook payload builders and in-memory stand-ins for the Mongo-backed services
"""
import random
from datetime import datetime, UTC
from typing import Any, Dict, List, Optional

from bson import ObjectId

from app.exceptions import DuplicateListingError
from app.models.generator import AuditTrail, Generator
from app.models.status_enums import GeneratorStatus
from app.models.user import User, default_display_name
from app.utils.listing_fields import generate_tags

TEST_QUEUE = "test_whatsapp_messages"
TEST_DEAD_LETTER_QUEUE = "test_whatsapp_messages:failed"

KIRLOSKAR_LISTING = """Brand: Kirloskar
Model: KG1-62.5AS
Price: ₹8,50,000
Hours: 12500
Location: Mumbai, Maharashtra
Description: Excellent condition, single owner"""


def generate_random_whatsapp_id() -> str:
    """Generate a random 12 digit WhatsApp ID"""
    return f"91{random.randint(1000000000, 9999999999)}"


def generate_message_id() -> str:
    return f"wamid.{random.randint(10**11, 10**12 - 1)}"


def build_webhook_payload(
    message_id: str,
    sender: str,
    text: Optional[str] = None,
    reply_to: Optional[str] = None,
    message_type: str = "text",
    sender_name: Optional[str] = "Test Seller",
    extra: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Build a WhatsApp Cloud API webhook payload carrying one message"""
    message: Dict[str, Any] = {
        "id": message_id,
        "from": sender,
        "type": message_type,
        "timestamp": "1700000000",
    }
    if text is not None:
        message["text"] = {"body": text}
    if reply_to is not None:
        message["context"] = {"id": reply_to, "from": sender}
    if extra:
        message.update(extra)

    return {
        "object": "whatsapp_business_account",
        "entry": [
            {
                "id": "business-account",
                "changes": [
                    {
                        "field": "messages",
                        "value": {
                            "messaging_product": "whatsapp",
                            "contacts": [{"wa_id": sender, "profile": {"name": sender_name}}],
                            "messages": [message],
                        },
                    }
                ],
            }
        ],
    }


def build_generator(
    seller_id: str,
    status: GeneratorStatus = GeneratorStatus.FOR_SALE,
    message_id: Optional[str] = None,
    **overrides: Any,
) -> Generator:
    """Build a complete listing with a fresh id"""
    data: Dict[str, Any] = {
        "id": str(ObjectId()),
        "brand": "Kirloskar",
        "model": "KG1-62.5AS",
        "price": 850000,
        "hours_run": 12500,
        "location_text": "Mumbai, Maharashtra",
        "description": "Excellent condition",
        "status": status,
        "seller_id": seller_id,
        "audit_trail": AuditTrail(whatsapp_message_id=message_id or generate_message_id()),
    }
    data.update(overrides)
    return Generator(**data)


class InMemoryUserService:
    """Dict-backed replacement for UserService"""

    def __init__(self):
        self.users: Dict[str, User] = {}

    def add(self, whatsapp_id: str, **fields: Any) -> User:
        user = User(id=str(ObjectId()), whatsapp_id=whatsapp_id, **fields)
        self.users[user.id] = user
        return user

    async def get_user(self, user_id: str) -> Optional[User]:
        return self.users.get(user_id)

    async def get_by_whatsapp_id(self, whatsapp_id: str) -> Optional[User]:
        for user in self.users.values():
            if user.whatsapp_id == whatsapp_id:
                return user
        return None

    async def find_or_create(self, whatsapp_id: str, display_name: Optional[str] = None) -> User:
        user = await self.get_by_whatsapp_id(whatsapp_id)
        if user is None:
            user = self.add(whatsapp_id, display_name=display_name or default_display_name(whatsapp_id))
        elif display_name and not user.display_name:
            user.display_name = display_name
        return user

    async def update_activity(self, user: User) -> User:
        user.last_activity = datetime.now(UTC)
        return user

    async def increment_total_listings(self, user_id: str) -> Optional[User]:
        user = self.users.get(user_id)
        if user:
            user.total_listings += 1
        return user

    async def increment_successful_sales(self, user_id: str) -> Optional[User]:
        user = self.users.get(user_id)
        if user:
            user.successful_sales += 1
        return user


class InMemoryGeneratorService:
    """Dict-backed replacement for GeneratorService"""

    def __init__(self):
        self.generators: Dict[str, Generator] = {}

    def add(self, generator: Generator) -> Generator:
        self.generators[generator.id] = generator
        return generator

    async def create_generator(self, generator: Generator) -> Generator:
        message_id = generator.audit_trail.whatsapp_message_id
        if await self.find_by_message_id(message_id):
            raise DuplicateListingError(f"duplicate {message_id}", whatsapp_message_id=message_id)
        generator.tags = generate_tags(generator.brand, generator.model, generator.location_text)
        generator.id = str(ObjectId())
        return self.add(generator)

    async def get_generator(self, generator_id: str) -> Optional[Generator]:
        return self.generators.get(generator_id)

    async def find_by_message_id(self, whatsapp_message_id: str) -> Optional[Generator]:
        for generator in self.generators.values():
            if generator.audit_trail.whatsapp_message_id == whatsapp_message_id:
                return generator
        return None

    async def mark_as_sold(self, generator_id: str, sold_price: Optional[float] = None) -> Optional[Generator]:
        generator = self.generators.get(generator_id)
        if generator is None or generator.status != GeneratorStatus.FOR_SALE:
            return None
        generator.status = GeneratorStatus.SOLD
        generator.sold_date = datetime.now(UTC)
        if sold_price:
            generator.sold_price = sold_price
        return generator

    def by_status(self, status: GeneratorStatus) -> List[Generator]:
        return [g for g in self.generators.values() if g.status == status]
