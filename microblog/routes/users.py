import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from ..errors import InvalidCursorError, NotFoundError, StorageError
from ..schemas.posts import PostOut, PostsPageOut
from ..storage import Manager
from ..storage.base import MAX_PAGE_SIZE
from .deps import get_manager

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_PAGE_SIZE = 10


@router.get('/{user_id}/posts', response_model=PostsPageOut, response_model_exclude_none=True)
async def list_posts(
    user_id: str,
    page: str = '',
    size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    manager: Manager = Depends(get_manager),
):
    try:
        posts, next_page = await manager.get_posts_in_page(user_id, page, size)
    except NotFoundError:
        raise HTTPException(404, 'User has no posts')
    except InvalidCursorError as e:
        raise HTTPException(400, str(e))
    except StorageError as e:
        logger.error(f"Listing posts of {user_id} failed: {e}")
        raise HTTPException(500, 'storage error')
    return PostsPageOut(posts=[PostOut.from_post(p) for p in posts], nextPage=next_page)
