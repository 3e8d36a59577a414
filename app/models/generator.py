"""
Generator listing models
"""

from datetime import datetime, UTC
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from app.models.status_enums import GeneratorStatus, SoldReplyAction

BRAND_MAX_LENGTH = 50
MODEL_MAX_LENGTH = 100
LOCATION_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 1000


class MediaItem(BaseModel):
    """Image or other media re-hosted in object storage"""
    url: str
    filename: Optional[str] = None
    size: Optional[int] = None
    mimetype: Optional[str] = None


class AuditTrail(BaseModel):
    """Where a listing came from and who reviewed it"""
    whatsapp_message_id: str
    original_message_text: Optional[str] = None
    parsed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    parsing_errors: List[str] = Field(default_factory=list)
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejected_reason: Optional[str] = None


class Generator(BaseModel):
    """A used generator offered for sale"""
    id: Optional[str] = None

    # Core generator information
    brand: str = Field(default="", max_length=BRAND_MAX_LENGTH)
    model: str = Field(default="", max_length=MODEL_MAX_LENGTH)
    price: float = Field(default=0, ge=0)
    hours_run: float = Field(default=0, ge=0)
    location_text: str = Field(default="", max_length=LOCATION_MAX_LENGTH)
    description: str = Field(default="", max_length=DESCRIPTION_MAX_LENGTH)

    images: List[MediaItem] = Field(default_factory=list)
    status: GeneratorStatus = GeneratorStatus.PENDING_REVIEW
    seller_id: str
    audit_trail: AuditTrail

    # Derived on write
    tags: List[str] = Field(default_factory=list)

    # Counters
    views: int = 0
    whatsapp_clicks: int = 0

    # Sold information
    sold_date: Optional[datetime] = None
    sold_price: Optional[float] = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @model_validator(mode="after")
    def check_complete_unless_failed(self) -> "Generator":
        # failed_parsing listings keep whatever the parser salvaged
        if self.status != GeneratorStatus.FAILED_PARSING:
            if not self.brand.strip() or not self.model.strip():
                raise ValueError("brand and model are required")
            if self.price <= 0:
                raise ValueError("price must be positive")
        return self


class ParsedListing(BaseModel):
    """Best-effort fields extracted from a WhatsApp message"""
    brand: str = ""
    model: str = ""
    price: int = 0
    hours_run: int = 0
    location_text: str = ""
    description: str = ""
    contact: str = ""


class ParseResult(BaseModel):
    """Outcome of parsing one message"""
    success: bool
    data: ParsedListing = Field(default_factory=ParsedListing)
    errors: List[str] = Field(default_factory=list)


class SoldReplyResult(BaseModel):
    """Result of interpreting a reply as a SOLD request"""
    success: bool
    action: SoldReplyAction
    message: str
    generator_id: Optional[str] = None
    current_status: Optional[GeneratorStatus] = None
    sold_date: Optional[datetime] = None
    details: Dict[str, Any] = Field(default_factory=dict)
