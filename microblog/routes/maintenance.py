from fastapi import APIRouter, Depends, Response

from ..storage import Manager
from .deps import get_manager

router = APIRouter()


@router.get('/ping')
async def ping(manager: Manager = Depends(get_manager)):
    if await manager.is_ready():
        return Response(status_code=200)
    return Response(status_code=503)
