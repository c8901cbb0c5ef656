import asyncio
import uuid

import pytest
import pytest_asyncio
from fakeredis import aioredis as fake_aioredis
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient
from redis.exceptions import ConnectionError as RedisConnectionError

from microblog.main import app
from microblog.storage import CachedManager, InMemoryManager, MongoManager


class BrokenRedis:
    """Redis client whose every call fails, to exercise the degraded cache path"""

    async def get(self, *args, **kwargs):
        raise RedisConnectionError('redis is down')

    async def set(self, *args, **kwargs):
        raise RedisConnectionError('redis is down')

    async def delete(self, *args, **kwargs):
        raise RedisConnectionError('redis is down')

    async def ping(self):
        raise RedisConnectionError('redis is down')


class SlowRedis:
    """Redis client that answers only after `delay` seconds"""

    def __init__(self, delay):
        self.delay = delay

    async def get(self, *args, **kwargs):
        await asyncio.sleep(self.delay)

    async def set(self, *args, **kwargs):
        await asyncio.sleep(self.delay)
        return True

    async def delete(self, *args, **kwargs):
        await asyncio.sleep(self.delay)
        return 1

    async def ping(self):
        await asyncio.sleep(self.delay)
        return True


@pytest_asyncio.fixture
async def memory_manager():
    return InMemoryManager()


@pytest_asyncio.fixture
async def mongo_manager():
    client = AsyncMongoMockClient()
    manager = MongoManager(client[f'test_{uuid.uuid4().hex[:8]}'])
    await manager.ensure_indexes()
    return manager


@pytest_asyncio.fixture
async def redis_client():
    client = fake_aioredis.FakeRedis()
    yield client
    await client.flushall()


@pytest_asyncio.fixture
async def cached_manager(redis_client, memory_manager):
    return CachedManager(redis_client, memory_manager)


@pytest.fixture
def broken_redis():
    return BrokenRedis()


@pytest_asyncio.fixture
async def api_client(memory_manager):
    app.state.manager = memory_manager
    async with AsyncClient(transport=ASGITransport(app=app), base_url='http://test') as ac:
        yield ac
    app.state.manager = None


@pytest.fixture
def slow_redis():
    return SlowRedis(delay=5)


@pytest_asyncio.fixture
async def mongo_cached_manager(redis_client, mongo_manager):
    return CachedManager(redis_client, mongo_manager)
