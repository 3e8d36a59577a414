"""
Service for the durable inbound message queue on Redis
"""

import json
import logging
from datetime import datetime, UTC
from typing import Any, Dict, Optional

from app.db.redis_client import RedisConnection
from app.models.status_enums import ProcessingStatus

logger = logging.getLogger(__name__)


class MessageQueueService:
    """FIFO queue of JSON messages: LPUSH onto the head, BRPOP from the tail"""

    def __init__(
        self,
        connection: RedisConnection,
        dead_letter_queue: Optional[str] = None,
        dead_letter_max_length: int = 1000,
    ) -> None:
        self.connection = connection
        self.dead_letter_queue = dead_letter_queue
        self.dead_letter_max_length = dead_letter_max_length

    async def enqueue(self, queue_name: str, message: Dict[str, Any]) -> int:
        """Append a message to the queue; returns the new queue length"""
        data = json.dumps(message, default=str)
        length = await self.connection.execute(lambda client: client.lpush(queue_name, data))
        logger.info("Message added to queue %s (length %d)", queue_name, length)
        return int(length)

    async def dequeue(self, queue_name: str, timeout: int = 5) -> Optional[Dict[str, Any]]:
        """Block up to ``timeout`` seconds for the oldest message; None on timeout"""
        result = await self.connection.execute(lambda client: client.brpop([queue_name], timeout=timeout))
        if not result:
            return None

        raw = result[1]
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.error("Discarding undecodable message from %s: %s", queue_name, e)
            await self.dead_letter({"raw": raw if isinstance(raw, str) else repr(raw)}, f"Undecodable message: {e}")
            return None

    async def length(self, queue_name: str) -> int:
        return int(await self.connection.execute(lambda client: client.llen(queue_name)))

    async def clear(self, queue_name: str) -> int:
        """Delete the queue; returns the number of keys removed"""
        deleted = await self.connection.execute(lambda client: client.delete(queue_name))
        logger.info("Queue %s cleared", queue_name)
        return int(deleted)

    async def dead_letter(self, message: Dict[str, Any], error: str) -> bool:
        """Park a message that could not be processed; never raises"""
        if not self.dead_letter_queue:
            return False

        entry = {
            "payload": message,
            "error": error,
            "failed_at": datetime.now(UTC).isoformat(),
            "processing_status": ProcessingStatus.FAILED.value,
        }
        data = json.dumps(entry, default=str)
        queue = self.dead_letter_queue
        max_length = self.dead_letter_max_length

        async def push(client):
            await client.lpush(queue, data)
            await client.ltrim(queue, 0, max_length - 1)

        try:
            await self.connection.execute(push)
            return True
        except Exception as e:
            logger.error("Error moving message to dead-letter queue %s: %s", queue, e)
            return False
