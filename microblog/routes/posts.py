import logging

from fastapi import APIRouter, Depends, HTTPException

from ..auth import get_current_user
from ..errors import NotFoundError, StorageError
from ..schemas.posts import PostIn, PostOut
from ..storage import Manager
from .deps import get_manager

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post('', response_model=PostOut, response_model_exclude_none=True)
async def create(payload: PostIn, current_user: str = Depends(get_current_user),
                 manager: Manager = Depends(get_manager)):
    try:
        post = await manager.add_post(current_user, payload.text)
    except StorageError as e:
        logger.error(f"Creating post for {current_user} failed: {e}")
        raise HTTPException(500, 'storage error')
    return PostOut.from_post(post)


@router.get('/{post_id}', response_model=PostOut, response_model_exclude_none=True)
async def get(post_id: str, manager: Manager = Depends(get_manager)):
    try:
        post = await manager.get_post(post_id)
    except NotFoundError:
        raise HTTPException(404, 'Post not found')
    except StorageError as e:
        logger.error(f"Fetching post {post_id} failed: {e}")
        raise HTTPException(500, 'storage error')
    return PostOut.from_post(post)


@router.patch('/{post_id}', response_model=PostOut, response_model_exclude_none=True)
async def modify(post_id: str, payload: PostIn, current_user: str = Depends(get_current_user),
                 manager: Manager = Depends(get_manager)):
    try:
        post = await manager.get_post(post_id)
        if post.author_id != current_user:
            raise HTTPException(403, 'Only the author can edit a post')
        post = await manager.modify_post(post_id, payload.text)
    except NotFoundError:
        raise HTTPException(404, 'Post not found')
    except StorageError as e:
        logger.error(f"Modifying post {post_id} failed: {e}")
        raise HTTPException(500, 'storage error')
    return PostOut.from_post(post)
