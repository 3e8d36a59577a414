import logging
from datetime import datetime, UTC

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.dependencies import get_queue_service
from app.core.config import settings
from app.services.message_queue_service import MessageQueueService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/status")
async def get_queue_status(queue: MessageQueueService = Depends(get_queue_service)):
    """Pending and dead-lettered message counts"""
    try:
        pending = await queue.length(settings.MESSAGE_QUEUE_NAME)
        failed = await queue.length(settings.DEAD_LETTER_QUEUE_NAME)
    except Exception as e:
        logger.error("Error getting queue status: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get queue status: {str(e)}",
        )

    return {
        "queue_name": settings.MESSAGE_QUEUE_NAME,
        "pending_messages": pending,
        "failed_messages": failed,
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.delete("/clear")
async def clear_queue(queue: MessageQueueService = Depends(get_queue_service)):
    """Drop every pending message (development and testing only)"""
    if settings.is_production:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Queue clearing not allowed in production",
        )

    try:
        deleted = await queue.clear(settings.MESSAGE_QUEUE_NAME)
    except Exception as e:
        logger.error("Error clearing queue: %s", e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to clear queue: {str(e)}",
        )

    return {
        "success": True,
        "message": f"Queue {settings.MESSAGE_QUEUE_NAME} cleared",
        "deleted_count": deleted,
        "timestamp": datetime.now(UTC).isoformat(),
    }
