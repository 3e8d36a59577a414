"""
Services module initialization.

``ServiceContainer`` owns the process-wide connections and the services built
on them. It is created once at process start, connected explicitly and closed
on shutdown; request handlers reach it through ``app.state``.
"""

import logging
from typing import Optional

from app.core.config import Settings, settings as default_settings
from app.db.init_db import init_database
from app.db.mongodb import MongoDB
from app.db.redis_client import RedisConnection
from app.services.generator_service import GeneratorService
from app.services.media_service import MediaService
from app.services.message_queue_service import MessageQueueService
from app.services.parser_worker import ParserWorker
from app.services.sold_workflow_service import SoldWorkflowService
from app.services.storage_service import StorageService
from app.services.user_service import UserService

logger = logging.getLogger(__name__)


class ServiceContainer:
    """Connections plus the services wired on top of them"""

    def __init__(
        self,
        config: Settings = default_settings,
        mongodb: Optional[MongoDB] = None,
        redis_connection: Optional[RedisConnection] = None,
    ) -> None:
        self.config = config
        self.mongodb = mongodb or MongoDB(config.MONGODB_URL)
        self.redis = redis_connection or RedisConnection(
            config.REDIS_URL,
            max_attempts=config.REDIS_MAX_RETRY_ATTEMPTS,
            backoff_base=config.REDIS_RETRY_BASE_SECONDS,
            backoff_cap=config.REDIS_RETRY_CAP_SECONDS,
            max_retry_time=config.REDIS_MAX_RETRY_TIME_SECONDS,
        )

        self.queue_service = MessageQueueService(
            self.redis,
            dead_letter_queue=config.DEAD_LETTER_QUEUE_NAME,
            dead_letter_max_length=config.DEAD_LETTER_MAX_LENGTH,
        )
        self.user_service: Optional[UserService] = None
        self.generator_service: Optional[GeneratorService] = None
        self.sold_workflow: Optional[SoldWorkflowService] = None
        self.media_service: Optional[MediaService] = None
        self.parser_worker: Optional[ParserWorker] = None

    async def connect(self) -> None:
        """Open connections, ensure indexes and build the database-backed services"""
        await self.mongodb.connect_to_mongo()
        try:
            await self.redis.connect()
            db = self.mongodb.get_database()
            await init_database(db)
        except Exception as e:
            logger.error("Service startup failed: %s", e)
            await self.redis.close()
            await self.mongodb.close_mongo_connection()
            raise

        self.user_service = UserService(db)
        self.generator_service = GeneratorService(db)
        self.sold_workflow = SoldWorkflowService(self.generator_service, self.user_service)
        self.media_service = MediaService(
            StorageService(self.config), timeout=self.config.MEDIA_DOWNLOAD_TIMEOUT_SECONDS
        )
        self.parser_worker = ParserWorker(
            queue=self.queue_service,
            queue_name=self.config.MESSAGE_QUEUE_NAME,
            user_service=self.user_service,
            generator_service=self.generator_service,
            media_service=self.media_service,
            sold_workflow=self.sold_workflow,
            pop_timeout=self.config.QUEUE_POP_TIMEOUT_SECONDS,
            error_cooldown=self.config.WORKER_ERROR_COOLDOWN_SECONDS,
        )
        logger.info("Services initialized")

    async def close(self) -> None:
        if self.parser_worker:
            self.parser_worker.stop()
        await self.redis.close()
        await self.mongodb.close_mongo_connection()
