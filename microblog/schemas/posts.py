from datetime import datetime, timezone
from pydantic import BaseModel
from typing import List, Optional

from ..models import Post


def format_time(value: datetime) -> str:
    """RFC 3339 in UTC, second precision"""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')


class PostIn(BaseModel):
    text: str


class PostOut(BaseModel):
    id: str
    text: str
    authorId: str
    createdAt: str
    lastModifiedAt: Optional[str] = None

    @classmethod
    def from_post(cls, post: Post) -> 'PostOut':
        return cls(
            id=post.id,
            text=post.text,
            authorId=post.author_id,
            createdAt=format_time(post.created_at),
            lastModifiedAt=format_time(post.last_modified_at) if post.last_modified_at else None,
        )


class PostsPageOut(BaseModel):
    posts: List[PostOut]
    nextPage: str
