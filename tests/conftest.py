import pytest
import pytest_asyncio
from fakeredis import aioredis as fake_aioredis
from unittest.mock import AsyncMock

from app.db.redis_client import RedisConnection
from app.services.message_queue_service import MessageQueueService
from app.services.sold_workflow_service import SoldWorkflowService
from tests.test_utils import TEST_DEAD_LETTER_QUEUE, InMemoryGeneratorService, InMemoryUserService


@pytest_asyncio.fixture
async def redis_connection():
    """RedisConnection backed by an in-process fake Redis server"""
    connection = RedisConnection(
        "redis://localhost:6379/0",
        max_attempts=3,
        backoff_base=0.01,
        backoff_cap=0.05,
        max_retry_time=5,
        client=fake_aioredis.FakeRedis(decode_responses=True),
    )
    await connection.connect()
    yield connection
    await connection.client.flushall()
    await connection.close()


@pytest_asyncio.fixture
async def queue_service(redis_connection):
    return MessageQueueService(redis_connection, dead_letter_queue=TEST_DEAD_LETTER_QUEUE, dead_letter_max_length=5)


@pytest.fixture
def user_service():
    return InMemoryUserService()


@pytest.fixture
def generator_service():
    return InMemoryGeneratorService()


@pytest.fixture
def sold_workflow(generator_service, user_service):
    return SoldWorkflowService(generator_service, user_service)


@pytest.fixture
def media_service():
    service = AsyncMock()
    service.process_media.return_value = []
    return service
