"""
Marketplace user keyed by WhatsApp ID
"""

from datetime import datetime, UTC
from typing import Optional

from pydantic import BaseModel, Field

from app.models.status_enums import UserRole

WHATSAPP_ID_PATTERN = r"^\d{10,15}$"


def default_display_name(whatsapp_id: str) -> str:
    return f"User {whatsapp_id[-4:]}"


class User(BaseModel):
    """Seller or admin identified by a WhatsApp number"""
    id: Optional[str] = None
    whatsapp_id: str = Field(..., pattern=WHATSAPP_ID_PATTERN)
    display_name: Optional[str] = Field(default=None, max_length=100)
    role: UserRole = UserRole.SELLER
    is_active: bool = True

    # Counters
    total_listings: int = Field(default=0, ge=0)
    successful_sales: int = Field(default=0, ge=0)

    # Activity
    first_message_date: datetime = Field(default_factory=lambda: datetime.now(UTC))
    last_activity: datetime = Field(default_factory=lambda: datetime.now(UTC))

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
