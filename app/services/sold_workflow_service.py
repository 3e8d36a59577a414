"""
SOLD reply workflow.

A seller marks a listing as sold by replying "SOLD" to the WhatsApp message
that created it. The reply is checked in a fixed order and the first failing
check decides the outcome:

1. reply text is exactly "sold" (trimmed, case-insensitive)  -> ignored
2. reply references an original message                      -> ignored
3. a listing exists for that message                         -> not_found
4. the replying user is the listing's seller                 -> unauthorized
5. the listing is not sold already                           -> already_sold
6. the listing is for_sale                                   -> invalid_status

Ownership is checked before any status check, so a stranger only ever learns
"not found" or "unauthorized".
"""

import logging
from typing import Any, Dict, List, Optional

from app.models.generator import Generator, SoldReplyResult
from app.models.status_enums import GeneratorStatus, SoldReplyAction
from app.models.user import User
from app.models.whatsapp import InboundMessage, extract_reply_info
from app.services.generator_service import GeneratorService
from app.services.user_service import UserService

logger = logging.getLogger(__name__)

SOLD_KEYWORD = "sold"


class SoldWorkflowService:
    """Interprets replies as requests to mark a listing sold"""

    def __init__(self, generator_service: GeneratorService, user_service: UserService) -> None:
        self.generator_service = generator_service
        self.user_service = user_service

    async def handle_sold_reply(self, message: InboundMessage, user: User) -> SoldReplyResult:
        try:
            result = await self._handle_sold_reply(message, user)
        except Exception as e:
            logger.error("Error handling SOLD reply %s: %s", message.message_id, e)
            return SoldReplyResult(
                success=False,
                action=SoldReplyAction.ERROR,
                message="Internal error processing SOLD reply",
                details={"error": str(e)},
            )

        logger.info("SOLD reply %s from user %s: %s", message.message_id, user.id, result.action.value)
        return result

    async def _handle_sold_reply(self, message: InboundMessage, user: User) -> SoldReplyResult:
        reply_text = (message.text or "").strip().lower()
        if reply_text != SOLD_KEYWORD:
            return SoldReplyResult(success=False, action=SoldReplyAction.IGNORED, message='Reply text is not "SOLD"')

        reply_info = extract_reply_info(message)
        if reply_info is None:
            return SoldReplyResult(
                success=False, action=SoldReplyAction.IGNORED, message="No context/original message ID found"
            )
        original_message_id = reply_info["original_message_id"]

        generator = await self.generator_service.find_by_message_id(original_message_id)
        if generator is None:
            return SoldReplyResult(
                success=False,
                action=SoldReplyAction.NOT_FOUND,
                message="Generator not found for the original message",
                details={"original_message_id": original_message_id},
            )

        if generator.seller_id != user.id:
            return SoldReplyResult(
                success=False,
                action=SoldReplyAction.UNAUTHORIZED,
                message="User is not authorized to mark this generator as sold",
                generator_id=generator.id,
            )

        if generator.status == GeneratorStatus.SOLD:
            return SoldReplyResult(
                success=False,
                action=SoldReplyAction.ALREADY_SOLD,
                message="Generator is already marked as sold",
                generator_id=generator.id,
                current_status=generator.status,
                sold_date=generator.sold_date,
            )

        if generator.status != GeneratorStatus.FOR_SALE:
            return self._invalid_status(generator, generator.status)

        sold = await self.generator_service.mark_as_sold(generator.id)
        if sold is None:
            # Lost a race with another status change
            latest = await self.generator_service.get_generator(generator.id)
            return self._invalid_status(generator, latest.status if latest else None)

        seller = await self.user_service.increment_successful_sales(user.id)
        details: Dict[str, Any] = {}
        if seller is not None:
            details["user_stats"] = {
                "total_listings": seller.total_listings,
                "successful_sales": seller.successful_sales,
            }

        return SoldReplyResult(
            success=True,
            action=SoldReplyAction.MARKED_SOLD,
            message="Generator successfully marked as sold",
            generator_id=sold.id,
            current_status=sold.status,
            sold_date=sold.sold_date,
            details=details,
        )

    def _invalid_status(self, generator: Generator, status: Optional[GeneratorStatus]) -> SoldReplyResult:
        status_text = status.value if status else "unknown"
        return SoldReplyResult(
            success=False,
            action=SoldReplyAction.INVALID_STATUS,
            message=f"Generator cannot be sold from status: {status_text}",
            generator_id=generator.id,
            current_status=status,
        )

    async def get_sold_workflow_stats(self, seller_id: Optional[str] = None) -> Dict[str, Any]:
        return await self.generator_service.get_sold_workflow_stats(seller_id)

    async def get_recent_sold_activities(self, limit: int = 10) -> List[Generator]:
        return await self.generator_service.get_recent_sold(limit)
