from fastapi import APIRouter
from .posts import router as posts_router
from .users import router as users_router
from .maintenance import router as maintenance_router

router = APIRouter()
router.include_router(posts_router, prefix='/api/v1/posts', tags=['posts'])
router.include_router(users_router, prefix='/api/v1/users', tags=['users'])
router.include_router(maintenance_router, prefix='/maintenance', tags=['maintenance'])
