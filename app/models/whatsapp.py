"""
WhatsApp Cloud API webhook payload models.

Payloads are decoded once at the worker boundary into an ``InboundMessage``;
nothing downstream reads the raw dictionary.
"""

from datetime import datetime, UTC
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from app.exceptions import PayloadDecodeError

MEDIA_KINDS = ("image", "video", "document")


class MediaReference(BaseModel):
    """Media attached to a message, as announced by the platform"""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    url: Optional[str] = Field(default=None, validation_alias=AliasChoices("url", "link"))
    mimetype: Optional[str] = Field(default=None, validation_alias=AliasChoices("mime_type", "mimetype"))
    media_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("id", "media_id"))
    caption: Optional[str] = None


class _TextBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    body: str = ""


class _ReplyContext(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    sender: Optional[str] = Field(default=None, alias="from")


class _RawMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    sender: str = Field(alias="from")
    type: str = "text"
    timestamp: Optional[str] = None
    text: Optional[_TextBody] = None
    context: Optional[_ReplyContext] = None
    image: Optional[MediaReference] = None
    video: Optional[MediaReference] = None
    document: Optional[MediaReference] = None


class _Profile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None


class _RawContact(BaseModel):
    model_config = ConfigDict(extra="ignore")

    wa_id: Optional[str] = None
    profile: Optional[_Profile] = None


class InboundMessage(BaseModel):
    """Normalized inbound WhatsApp message"""
    message_id: str
    sender_id: str
    sender_name: Optional[str] = None
    kind: str
    text: Optional[str] = None
    reply_to: Optional[str] = None
    timestamp: Optional[str] = None
    media: List[MediaReference] = Field(default_factory=list)
    received_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_reply(self) -> bool:
        return bool(self.reply_to)

    @property
    def is_text(self) -> bool:
        return self.kind == "text"


def _first(items: Any) -> Optional[Any]:
    if isinstance(items, list) and items:
        return items[0]
    return None


def decode_webhook_payload(payload: Any) -> Optional[InboundMessage]:
    """Decode the first inbound message of a webhook payload.

    Returns None when the payload carries no message (status callbacks and the
    like). Raises PayloadDecodeError when a message is present but malformed.
    """
    if not isinstance(payload, dict):
        raise PayloadDecodeError("Webhook payload must be an object")

    entry = _first(payload.get("entry"))
    change = _first(entry.get("changes")) if isinstance(entry, dict) else None
    value = change.get("value") if isinstance(change, dict) else None
    if not isinstance(value, dict):
        return None

    raw_message = _first(value.get("messages"))
    if raw_message is None:
        return None

    try:
        message = _RawMessage.model_validate(raw_message)
        raw_contact = _first(value.get("contacts"))
        contact = _RawContact.model_validate(raw_contact) if raw_contact is not None else None
    except ValidationError as e:
        raise PayloadDecodeError(f"Malformed message in webhook payload: {e}") from e

    sender_name = None
    if contact is not None:
        sender_name = (contact.profile.name if contact.profile else None) or contact.wa_id

    media = [ref for ref in (getattr(message, kind) for kind in MEDIA_KINDS) if ref is not None]

    return InboundMessage(
        message_id=message.id,
        sender_id=message.sender,
        sender_name=sender_name,
        kind=message.type,
        text=message.text.body if message.text else None,
        reply_to=message.context.id if message.context else None,
        timestamp=message.timestamp,
        media=media,
    )


def is_reply_message(message: InboundMessage) -> bool:
    return message.is_reply


def extract_reply_info(message: InboundMessage) -> Optional[Dict[str, Any]]:
    """Summarize the reply context of a message, or None for non-replies"""
    if not is_reply_message(message):
        return None

    return {
        "original_message_id": message.reply_to,
        "reply_text": (message.text or "").strip(),
        "reply_type": message.kind,
        "timestamp": message.timestamp,
    }
