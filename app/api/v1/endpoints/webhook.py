"""
WhatsApp webhook receiver.

Payloads are queued and acknowledged immediately. The sender retries on any
non-2xx answer or timeout, so a queueing failure is reported in the body of a
200 response instead of as an HTTP error.
"""

import json
import logging
from datetime import datetime, UTC
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import PlainTextResponse

from app.api.dependencies import get_queue_service
from app.core.config import settings
from app.models.status_enums import ProcessingStatus
from app.services.message_queue_service import MessageQueueService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/webhook", response_class=PlainTextResponse)
async def verify_webhook(
    mode: Optional[str] = Query(None, alias="hub.mode"),
    token: Optional[str] = Query(None, alias="hub.verify_token"),
    challenge: Optional[str] = Query(None, alias="hub.challenge"),
):
    """Answer the platform's subscription handshake"""
    expected = settings.WHATSAPP_WEBHOOK_VERIFY_TOKEN
    if mode == "subscribe" and expected and token == expected:
        logger.info("Webhook verified successfully")
        return PlainTextResponse(challenge or "", status_code=status.HTTP_200_OK)

    logger.warning("Webhook verification failed")
    return PlainTextResponse("Forbidden", status_code=status.HTTP_403_FORBIDDEN)


@router.post("/webhook")
async def receive_webhook(request: Request, queue: MessageQueueService = Depends(get_queue_service)):
    """Queue an inbound payload for the parser worker"""
    try:
        payload = await request.json()
    except ValueError:
        payload = None

    if not isinstance(payload, dict):
        logger.error("Invalid payload received")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid payload")

    enriched_payload = {
        **payload,
        "received_at": datetime.now(UTC).isoformat(),
        "processing_status": ProcessingStatus.QUEUED.value,
        "service_version": settings.SERVICE_VERSION,
    }

    try:
        await queue.enqueue(settings.MESSAGE_QUEUE_NAME, enriched_payload)
    except Exception as e:
        # No durable store is reachable here; the log line is the only record
        logger.error("Failed to queue webhook payload: %s; payload=%s", e, json.dumps(enriched_payload, default=str))
        return {
            "success": False,
            "message": "Webhook received but failed to queue",
            "error": str(e),
            "timestamp": datetime.now(UTC).isoformat(),
        }

    logger.info("Message queued successfully. Queue: %s", settings.MESSAGE_QUEUE_NAME)
    return {
        "success": True,
        "message": "Webhook received and queued for processing",
        "timestamp": datetime.now(UTC).isoformat(),
    }
