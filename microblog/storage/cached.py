"""
Cache-aside decorator over another Manager.

Single post reads go to Redis first and fall back to the wrapped store,
creations and edits are written through to the cache, listings always go to
the store. The cache is never authoritative: a failed cache write is only
logged, and an entry can lag the store by at most POST_CACHE_TTL.
"""
import logging
from typing import List, Optional, Tuple

from pydantic import ValidationError
from redis.asyncio import Redis

from ..cache import CacheManager
from ..errors import NotFoundError
from ..metrics import CACHE_HITS, CACHE_MISSES
from ..models import Post
from .base import Manager

logger = logging.getLogger(__name__)

POST_CACHE_TTL = 600  # 10 minutes
POST_KEY_PREFIX = "post"


class CachedManager(Manager):

    def __init__(self, client: Optional[Redis], persistent: Manager, ttl: int = POST_CACHE_TTL):
        self.cache = CacheManager(client, default_ttl=ttl)
        self.persistent = persistent

    async def _remember(self, post: Post) -> None:
        stored = await self.cache.set(post.id, post.model_dump_json(), prefix=POST_KEY_PREFIX)
        if not stored:
            logger.warning(f"Post {post.id} not cached")

    async def _recall(self, post_id: str) -> Optional[Post]:
        raw = await self.cache.get(post_id, POST_KEY_PREFIX)
        if raw is None:
            return None
        try:
            return Post.model_validate_json(raw)
        except ValidationError as e:
            logger.error(f"Discarding undecodable cache entry for post {post_id}: {str(e)}")
            return None

    async def add_post(self, author_id: str, text: str) -> Post:
        created = await self.persistent.add_post(author_id, text)
        await self._remember(created)
        return created

    async def get_post(self, post_id: str) -> Post:
        cached = await self._recall(post_id)
        if cached is not None:
            CACHE_HITS.inc()
            return cached

        CACHE_MISSES.inc()
        post = await self.persistent.get_post(post_id)
        await self._remember(post)
        return post

    async def get_posts_in_page(self, author_id: str, token: str, size: int) -> Tuple[List[Post], str]:
        return await self.persistent.get_posts_in_page(author_id, token, size)

    async def modify_post(self, post_id: str, text: str) -> Post:
        try:
            updated = await self.persistent.modify_post(post_id, text)
        except NotFoundError:
            # the store no longer has it; drop any copy we still serve
            await self.cache.delete(post_id, POST_KEY_PREFIX)
            raise
        await self._remember(updated)
        return updated

    async def is_ready(self) -> bool:
        if not await self.cache.ping():
            return False
        return await self.persistent.is_ready()
