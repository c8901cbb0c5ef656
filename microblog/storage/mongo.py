"""
MongoDB storage backend.
Document ids are ObjectIds, which grow with insertion order, so "_id
descending" is also "newest first". Page tokens are the hex id of the last
post of the previous page, which keeps pages stable under concurrent inserts.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Dict, List, Optional, Tuple

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import PyMongoError

from ..errors import InvalidCursorError, NotFoundError, StorageError
from ..metrics import STORAGE_ERRORS
from ..models import Post
from .base import MAX_PAGE_SIZE, Manager

logger = logging.getLogger(__name__)

COLLECTION_NAME = 'posts'
AUTHOR_INDEX_NAME = 'author_id_1__id_-1'


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # the driver hands back naive UTC datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def post_from_document(doc: Dict[str, Any]) -> Post:
    return Post(
        id=str(doc['_id']),
        text=doc['text'],
        author_id=doc['author_id'],
        created_at=_as_utc(doc['created_at']),
        last_modified_at=_as_utc(doc.get('last_modified_at')),
    )


class MongoManager(Manager):

    def __init__(self, database: AsyncIOMotorDatabase, timeout: Optional[float] = None):
        self._db = database
        self._posts = database[COLLECTION_NAME]
        self.timeout = timeout

    async def _run(self, operation: str, awaitable: Awaitable):
        """Await a driver call under the deadline, mapping failures to StorageError"""
        try:
            return await asyncio.wait_for(awaitable, self.timeout)
        except asyncio.TimeoutError as e:
            STORAGE_ERRORS.labels(backend='mongo').inc()
            logger.error(f"MongoDB {operation} timed out after {self.timeout}s")
            raise StorageError(f"{operation} timed out") from e
        except PyMongoError as e:
            STORAGE_ERRORS.labels(backend='mongo').inc()
            logger.error(f"MongoDB {operation} failed: {str(e)}")
            raise StorageError(f"{operation} failed") from e

    async def ensure_indexes(self) -> None:
        await self._run('create_index', self._posts.create_index(
            [('author_id', ASCENDING), ('_id', DESCENDING)],
            name=AUTHOR_INDEX_NAME,
        ))
        logger.info(f"Index {AUTHOR_INDEX_NAME} ensured on {COLLECTION_NAME}")

    async def is_ready(self) -> bool:
        try:
            await self._run('ping', self._db.command('ping'))
        except StorageError:
            return False
        return True

    async def add_post(self, author_id: str, text: str) -> Post:
        doc = {
            'text': text,
            'author_id': author_id,
            'created_at': datetime.now(timezone.utc),
        }
        res = await self._run('insert_one', self._posts.insert_one(doc))
        # re-read so created_at carries the precision the database stored
        stored = await self._run('find_one', self._posts.find_one({'_id': res.inserted_id}))
        if stored is None:
            raise NotFoundError(f"post {res.inserted_id} vanished after insert")
        return post_from_document(stored)

    async def get_post(self, post_id: str) -> Post:
        if not ObjectId.is_valid(post_id):
            raise NotFoundError(f"post {post_id} not found")
        doc = await self._run('find_one', self._posts.find_one({'_id': ObjectId(post_id)}))
        if doc is None:
            raise NotFoundError(f"post {post_id} not found")
        return post_from_document(doc)

    async def get_posts_in_page(self, author_id: str, token: str, size: int) -> Tuple[List[Post], str]:
        if not 1 <= size <= MAX_PAGE_SIZE:
            raise InvalidCursorError(f"page size must be between 1 and {MAX_PAGE_SIZE}")

        if token:
            if not ObjectId.is_valid(token):
                raise InvalidCursorError(f"malformed page token {token!r}")
            query = {'author_id': author_id, '_id': {'$lt': ObjectId(token)}}
        else:
            query = {'author_id': author_id}

        cursor = self._posts.find(query, sort=[('_id', DESCENDING)], limit=size)
        docs = await self._run('find', cursor.to_list(length=size))

        if not docs and not token:
            raise NotFoundError(f"user {author_id} has no posts")

        posts = [post_from_document(doc) for doc in docs]
        next_token = posts[-1].id if len(posts) == size else ""
        return posts, next_token

    async def modify_post(self, post_id: str, text: str) -> Post:
        if not ObjectId.is_valid(post_id):
            raise NotFoundError(f"post {post_id} not found")
        updated = await self._run('find_one_and_update', self._posts.find_one_and_update(
            {'_id': ObjectId(post_id)},
            {'$set': {'text': text, 'last_modified_at': datetime.now(timezone.utc)}},
            return_document=ReturnDocument.AFTER,
        ))
        if updated is None:
            raise NotFoundError(f"post {post_id} not found")
        return post_from_document(updated)
