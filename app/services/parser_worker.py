"""
Parser worker: drains the inbound queue and turns WhatsApp messages into listings
"""

import asyncio
import logging
from datetime import datetime, UTC
from typing import Any, Dict, Optional

from app.exceptions import DuplicateListingError
from app.models.generator import (
    BRAND_MAX_LENGTH,
    DESCRIPTION_MAX_LENGTH,
    LOCATION_MAX_LENGTH,
    MODEL_MAX_LENGTH,
    AuditTrail,
    Generator,
)
from app.models.message_queue import ProcessingAction, ProcessingResult
from app.models.status_enums import GeneratorStatus
from app.models.user import User
from app.models.whatsapp import InboundMessage, decode_webhook_payload, is_reply_message
from app.services.generator_service import GeneratorService
from app.services.media_service import MediaService
from app.services.message_queue_service import MessageQueueService
from app.services.parser_service import parse_generator_listing
from app.services.sold_workflow_service import SoldWorkflowService
from app.services.user_service import UserService

logger = logging.getLogger(__name__)


def _clip(value: str, limit: int) -> str:
    return value[:limit] if value else ""


class ParserWorker:
    """Single sequential consumer of the inbound message queue.

    Exactly one payload is in flight at a time. A payload that fails is logged
    and dead-lettered; the loop keeps going. A failing dequeue pauses the loop
    for ``error_cooldown`` seconds before polling again.
    """

    def __init__(
        self,
        queue: MessageQueueService,
        queue_name: str,
        user_service: UserService,
        generator_service: GeneratorService,
        media_service: MediaService,
        sold_workflow: SoldWorkflowService,
        pop_timeout: int = 5,
        error_cooldown: float = 5.0,
    ) -> None:
        self.queue = queue
        self.queue_name = queue_name
        self.user_service = user_service
        self.generator_service = generator_service
        self.media_service = media_service
        self.sold_workflow = sold_workflow
        self.pop_timeout = pop_timeout
        self.error_cooldown = error_cooldown

        self.is_running = False
        self.processed_count = 0
        self.failed_count = 0

    async def start(self) -> None:
        """Run the polling loop until ``stop`` is called"""
        if self.is_running:
            logger.warning("Parser worker is already running")
            return

        self.is_running = True
        logger.info("Starting parser worker on queue %s", self.queue_name)

        try:
            while self.is_running:
                try:
                    payload = await self.queue.dequeue(self.queue_name, self.pop_timeout)
                except Exception as e:
                    logger.error("Error in parser loop: %s", e)
                    await asyncio.sleep(self.error_cooldown)
                    continue

                if payload is None:
                    continue

                logger.info("Processing message from queue...")
                await self.process_message(payload)

        except asyncio.CancelledError:
            logger.info("Parser worker cancelled")
            raise
        finally:
            self.is_running = False
            logger.info("Parser worker stopped")

    def stop(self) -> None:
        """Ask the loop to exit after the current dequeue"""
        logger.info("Stopping parser worker")
        self.is_running = False

    async def process_message(self, payload: Dict[str, Any]) -> ProcessingResult:
        """Process one queued payload end to end; never raises"""
        start_time = datetime.now(UTC)
        message: Optional[InboundMessage] = None

        try:
            message = decode_webhook_payload(payload)
            if message is None:
                logger.info("No messages found in payload")
                result = ProcessingResult(success=True, action=ProcessingAction.NO_MESSAGE)
            else:
                result = await self._process_inbound(message)

            self.processed_count += 1

        except Exception as e:
            message_id = message.message_id if message else None
            logger.error("Error processing message %s: %s", message_id, e)
            self.failed_count += 1
            await self.queue.dead_letter(payload, str(e))
            result = ProcessingResult(
                success=False, action=ProcessingAction.FAILED, message_id=message_id, errors=[str(e)]
            )

        result.processing_time_seconds = (datetime.now(UTC) - start_time).total_seconds()
        return result

    async def _process_inbound(self, message: InboundMessage) -> ProcessingResult:
        user = await self.user_service.find_or_create(message.sender_id, message.sender_name)
        await self.user_service.update_activity(user)

        # Replies never become listings
        if is_reply_message(message):
            outcome = await self.sold_workflow.handle_sold_reply(message, user)
            return ProcessingResult(
                success=True,
                action=ProcessingAction.SOLD_REPLY,
                message_id=message.message_id,
                generator_id=outcome.generator_id,
                sold_reply_action=outcome.action.value,
            )

        if not message.is_text:
            logger.info("Ignoring %s message %s", message.kind, message.message_id)
            return ProcessingResult(success=True, action=ProcessingAction.IGNORED, message_id=message.message_id)

        generator = await self._create_listing(message, user)
        return ProcessingResult(
            success=True,
            action=ProcessingAction.LISTING_CREATED,
            message_id=message.message_id,
            generator_id=generator.id,
        )

    async def _create_listing(self, message: InboundMessage, user: User) -> Generator:
        if await self.generator_service.find_by_message_id(message.message_id):
            raise DuplicateListingError(
                f"Listing for WhatsApp message {message.message_id} already exists",
                whatsapp_message_id=message.message_id,
            )

        text = message.text or ""
        parse_result = parse_generator_listing(text)

        images = []
        if message.media:
            images = await self.media_service.process_media(message.media)

        data = parse_result.data
        generator = Generator(
            brand=_clip(data.brand, BRAND_MAX_LENGTH),
            model=_clip(data.model, MODEL_MAX_LENGTH),
            price=data.price,
            hours_run=data.hours_run,
            location_text=_clip(data.location_text, LOCATION_MAX_LENGTH),
            description=_clip(data.description, DESCRIPTION_MAX_LENGTH),
            images=images,
            seller_id=user.id,
            status=GeneratorStatus.PENDING_REVIEW if parse_result.success else GeneratorStatus.FAILED_PARSING,
            audit_trail=AuditTrail(
                whatsapp_message_id=message.message_id,
                original_message_text=text,
                parsed_at=datetime.now(UTC),
                parsing_errors=parse_result.errors,
            ),
        )

        generator = await self.generator_service.create_generator(generator)
        await self.user_service.increment_total_listings(user.id)

        logger.info(
            "Generator listing %s: %s (%d images)",
            "created" if parse_result.success else "failed",
            generator.id,
            len(images),
        )
        return generator
