"""
Process-local storage backend.
Two maps guarded by one reader/writer lock: author -> post ids in insertion
order, and post id -> post. Page tokens are numeric offsets, so a post added
between two page requests shifts the following pages.
"""
import base64
import binascii
import random
from datetime import datetime, timezone
from typing import Dict, List, Tuple
import logging

from aiorwlock import RWLock

from ..errors import InvalidCursorError, NotFoundError
from ..models import Post
from .base import MAX_PAGE_SIZE, Manager

logger = logging.getLogger(__name__)


def create_post_id(create_time: int) -> str:
    random_part = random.randrange(1_000_000)
    raw = f"{create_time}:{random_part}"
    return base64.urlsafe_b64encode(raw.encode()).decode().rstrip("=")


def encode_offset(offset: int) -> str:
    return base64.b64encode(str(offset).encode()).decode()


def decode_offset(token: str) -> int:
    try:
        offset = int(base64.b64decode(token, validate=True).decode())
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        raise InvalidCursorError(f"malformed page token {token!r}") from e
    if offset < 0:
        raise InvalidCursorError(f"malformed page token {token!r}")
    return offset


class InMemoryManager(Manager):

    def __init__(self):
        self._lock = RWLock()
        self._user_posts: Dict[str, List[str]] = {}
        self._all_posts: Dict[str, Post] = {}

    async def add_post(self, author_id: str, text: str) -> Post:
        async with self._lock.writer_lock:
            created_at = datetime.now(timezone.utc)
            post_id = create_post_id(int(created_at.timestamp()))
            while post_id in self._all_posts:
                post_id = create_post_id(int(created_at.timestamp()))
            post = Post(
                id=post_id,
                text=text,
                author_id=author_id,
                created_at=created_at,
                last_modified_at=None,
            )
            self._user_posts.setdefault(author_id, []).append(post_id)
            self._all_posts[post_id] = post
        return post

    async def get_post(self, post_id: str) -> Post:
        async with self._lock.reader_lock:
            post = self._all_posts.get(post_id)
        if post is None:
            raise NotFoundError(f"post {post_id} not found")
        return post

    async def get_posts_in_page(self, author_id: str, token: str, size: int) -> Tuple[List[Post], str]:
        if not 1 <= size <= MAX_PAGE_SIZE:
            raise InvalidCursorError(f"page size must be between 1 and {MAX_PAGE_SIZE}")
        start = decode_offset(token) if token else 0

        async with self._lock.reader_lock:
            post_ids = self._user_posts.get(author_id)
            if not post_ids:
                raise NotFoundError(f"user {author_id} has no posts")
            if start >= len(post_ids):
                raise InvalidCursorError("no posts available for this page")
            # newest first; equal timestamps keep the later insertion first
            ordered = sorted(
                reversed(post_ids),
                key=lambda pid: self._all_posts[pid].created_at,
                reverse=True,
            )
            end = min(start + size, len(ordered))
            page = [self._all_posts[pid] for pid in ordered[start:end]]

        next_token = encode_offset(end) if end < len(ordered) else ""
        return page, next_token

    async def modify_post(self, post_id: str, text: str) -> Post:
        async with self._lock.writer_lock:
            post = self._all_posts.get(post_id)
            if post is None:
                raise NotFoundError(f"post {post_id} not found")
            updated = post.model_copy(update={
                "text": text,
                "last_modified_at": datetime.now(timezone.utc),
            })
            self._all_posts[post_id] = updated
        logger.debug(f"Post {post_id} modified")
        return updated

    async def is_ready(self) -> bool:
        return True
