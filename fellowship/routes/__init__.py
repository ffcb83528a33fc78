from fastapi import APIRouter
from .stories import router as stories_router
from .media import router as media_router
from .posts import router as posts_router
from .notifications import router as notifications_router
from .fellowship import router as fellowship_router

router = APIRouter()
router.include_router(stories_router, prefix='/stories', tags=['stories'])
router.include_router(media_router, prefix='/media', tags=['media'])
router.include_router(posts_router, prefix='/posts', tags=['posts'])
router.include_router(notifications_router, prefix='/notifications', tags=['notifications'])
router.include_router(fellowship_router, prefix='/fellowship', tags=['fellowship'])
