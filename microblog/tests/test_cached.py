import asyncio
import logging
from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from microblog.errors import NotFoundError
from microblog.models import Post
from microblog.storage import CachedManager
from microblog.storage.cached import POST_CACHE_TTL


@pytest.mark.asyncio
async def test_add_post_populates_cache(cached_manager, redis_client):
    created = await cached_manager.add_post("abc123", "Hello World!")

    raw = await redis_client.get(f"post:{created.id}")
    assert raw is not None
    assert Post.model_validate_json(raw) == created
    ttl = await redis_client.ttl(f"post:{created.id}")
    assert 0 < ttl <= POST_CACHE_TTL


@pytest.mark.asyncio
async def test_get_after_add_is_served_from_cache(cached_manager, memory_manager):
    created = await cached_manager.add_post("abc123", "Hello World!")

    with patch.object(memory_manager, "get_post", wraps=memory_manager.get_post) as store_get:
        fetched = await cached_manager.get_post(created.id)

    assert fetched == created
    assert store_get.call_count == 0


@pytest.mark.asyncio
async def test_miss_reads_through_and_populates(cached_manager, memory_manager, redis_client):
    created = await memory_manager.add_post("abc123", "written behind the cache")
    assert await redis_client.get(f"post:{created.id}") is None

    with patch.object(memory_manager, "get_post", wraps=memory_manager.get_post) as store_get:
        first = await cached_manager.get_post(created.id)
        second = await cached_manager.get_post(created.id)

    assert first == created
    assert second == created
    assert store_get.call_count == 1


@pytest.mark.asyncio
async def test_get_unknown_post(cached_manager, redis_client):
    with pytest.raises(NotFoundError):
        await cached_manager.get_post("never-created")
    assert await redis_client.get("post:never-created") is None


@pytest.mark.asyncio
async def test_modify_writes_through(cached_manager):
    created = await cached_manager.add_post("alice", "Original message")
    assert (await cached_manager.get_post(created.id)).text == "Original message"

    await cached_manager.modify_post(created.id, "Updated message")

    fetched = await cached_manager.get_post(created.id)
    assert fetched.text == "Updated message"
    assert fetched.last_modified_at is not None


@pytest.mark.asyncio
async def test_modify_missing_post_evicts_cached_copy(cached_manager, redis_client):
    stale = Post(id="gone", text="stale", author_id="abc123",
                 created_at=datetime.now(timezone.utc), last_modified_at=None)
    await redis_client.set("post:gone", stale.model_dump_json())

    with pytest.raises(NotFoundError):
        await cached_manager.modify_post("gone", "edited")
    assert await redis_client.get("post:gone") is None


@pytest.mark.asyncio
async def test_listing_is_never_cached(cached_manager, memory_manager, redis_client):
    for i in range(1, 6):
        await cached_manager.add_post("abc123", f"post {i}")
    keys_before = set(await redis_client.keys("*"))

    with patch.object(memory_manager, "get_posts_in_page", wraps=memory_manager.get_posts_in_page) as store_page:
        posts, token = await cached_manager.get_posts_in_page("abc123", "", 2)

    assert [p.text for p in posts] == ["post 5", "post 4"]
    assert token
    assert store_page.call_count == 1
    assert set(await redis_client.keys("*")) == keys_before


@pytest.mark.asyncio
async def test_undecodable_entry_is_a_miss(cached_manager, redis_client):
    created = await cached_manager.add_post("abc123", "Hello World!")
    await redis_client.set(f"post:{created.id}", b"{not json")

    fetched = await cached_manager.get_post(created.id)
    assert fetched == created


@pytest.mark.asyncio
async def test_cache_outage_degrades_to_store(broken_redis, memory_manager):
    manager = CachedManager(broken_redis, memory_manager)

    created = await manager.add_post("abc123", "Hello World!")
    assert await manager.get_post(created.id) == created

    updated = await manager.modify_post(created.id, "edited")
    assert updated.text == "edited"
    assert (await manager.get_post(created.id)).text == "edited"


@pytest.mark.asyncio
async def test_without_client_everything_goes_to_store(memory_manager):
    manager = CachedManager(None, memory_manager)

    created = await manager.add_post("abc123", "Hello World!")
    assert await manager.get_post(created.id) == created
    assert await manager.is_ready() is False


@pytest.mark.asyncio
async def test_is_ready_needs_cache_and_store(cached_manager, broken_redis, memory_manager):
    assert await cached_manager.is_ready() is True

    assert await CachedManager(broken_redis, memory_manager).is_ready() is False

    with patch.object(memory_manager, "is_ready", return_value=False):
        assert await cached_manager.is_ready() is False


@pytest.mark.asyncio
async def test_custom_ttl_applies_to_entries(redis_client, memory_manager):
    manager = CachedManager(redis_client, memory_manager, ttl=30)
    created = await manager.add_post("abc123", "short lived")

    ttl = await redis_client.ttl(f"post:{created.id}")
    assert 0 < ttl <= 30


@pytest.mark.asyncio
async def test_slow_cache_does_not_stall_operations(slow_redis, memory_manager, caplog):
    manager = CachedManager(slow_redis, memory_manager)
    manager.cache.op_timeout = 0.05

    loop = asyncio.get_running_loop()
    started = loop.time()
    with caplog.at_level(logging.ERROR, logger="microblog.cache"):
        created = await manager.add_post("abc123", "Hello World!")
        fetched = await manager.get_post(created.id)
        updated = await manager.modify_post(created.id, "edited")
        ready = await manager.is_ready()
    elapsed = loop.time() - started

    assert fetched == created
    assert updated.text == "edited"
    assert ready is False
    assert elapsed < 2
    assert "TimeoutError" in caplog.text


@pytest.mark.asyncio
async def test_mongo_backed_get_after_add_is_served_from_cache(mongo_cached_manager, mongo_manager):
    created = await mongo_cached_manager.add_post("abc123", "Hello World!")

    with patch.object(mongo_manager, "get_post", wraps=mongo_manager.get_post) as store_get:
        fetched = await mongo_cached_manager.get_post(created.id)

    assert fetched == created
    assert store_get.call_count == 0


@pytest.mark.asyncio
async def test_mongo_backed_modify_writes_through(mongo_cached_manager):
    created = await mongo_cached_manager.add_post("alice", "Original message")
    assert (await mongo_cached_manager.get_post(created.id)).text == "Original message"

    await mongo_cached_manager.modify_post(created.id, "Updated message")

    fetched = await mongo_cached_manager.get_post(created.id)
    assert fetched.text == "Updated message"
    assert fetched.last_modified_at is not None
