"""
Models for message processing queue
"""

from datetime import datetime, UTC
from typing import Optional, List
from enum import Enum
from pydantic import BaseModel, Field


class ProcessingAction(str, Enum):
    """What the parser worker did with a payload"""
    NO_MESSAGE = "no_message"            # Payload carried no inbound message
    LISTING_CREATED = "listing_created"  # New listing (pending_review or failed_parsing)
    SOLD_REPLY = "sold_reply"            # Reply handed to the SOLD workflow
    IGNORED = "ignored"                  # Non-text, non-reply message
    FAILED = "failed"                    # Processing raised; payload dead-lettered


class ProcessingResult(BaseModel):
    """Result of processing one queued payload"""
    success: bool
    action: ProcessingAction
    message_id: Optional[str] = None    # WhatsApp message ID
    generator_id: Optional[str] = None  # Listing created or affected
    sold_reply_action: Optional[str] = None
    errors: List[str] = []
    processing_time_seconds: Optional[float] = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
