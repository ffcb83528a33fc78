from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List, Optional
import logging

from ..schemas.posts import (
    CommentIn,
    CommentOut,
    LinkPreviewOut,
    PostIn,
    PostOut,
    ReactionIn,
    ReactionOut,
    ReactionSummaryOut,
)
from ..crud import (
    create_comment,
    create_post,
    ensure_profile,
    get_post,
    list_comments,
    list_posts,
    reaction_summary,
    set_reaction,
)
from ..auth import get_current_user
from ..cache import cache, check_rate_limit
from ..core import POSTS_CREATED, REACTIONS_SET
from ..link_preview import fetch_preview, normalize_url

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post('/', response_model=PostOut)
async def create(payload: PostIn, current_user: dict = Depends(get_current_user)):
    if not await check_rate_limit(current_user['id'], 'create_post', limit=60, window=3600):
        raise HTTPException(429, 'Rate limit exceeded. Too many posts.')
    await ensure_profile(current_user['id'])
    post = await create_post(
        current_user['id'], payload.content, url=payload.url, media_url=payload.media_url,
        media_type=payload.media_type, church_id=payload.church_id, is_anonymous=payload.is_anonymous,
    )
    POSTS_CREATED.labels(scope='church' if payload.church_id else 'global').inc()
    logger.info({'msg': 'post_created', 'post_id': post['id'], 'church_id': payload.church_id})
    return post


@router.get('/', response_model=List[PostOut])
async def feed(
    church_id: Optional[str] = None,
    limit: int = Query(30, ge=1, le=100),
    before_id: Optional[int] = None,
    current_user: dict = Depends(get_current_user)
):
    return await list_posts(church_id=church_id, limit=limit, before_id=before_id)


@router.get('/link-preview', response_model=LinkPreviewOut, response_model_exclude_none=True)
async def link_preview(url: str = Query(..., min_length=1), current_user: dict = Depends(get_current_user)):
    if not await check_rate_limit(current_user['id'], 'link_preview', limit=120, window=3600):
        raise HTTPException(429, 'Rate limit exceeded. Too many previews.')
    key = normalize_url(url)
    cached = await cache.get(key, 'preview')
    if cached is not None:
        return cached
    preview = await fetch_preview(url)
    if preview.get('ok'):
        await cache.set(key, preview, 3600, 'preview')
    return preview


@router.get('/{post_id}/comments', response_model=List[CommentOut])
async def comments(post_id: int, current_user: dict = Depends(get_current_user)):
    if not await get_post(post_id):
        raise HTTPException(404, 'Post not found')
    return await list_comments(post_id)


@router.post('/{post_id}/comments', response_model=CommentOut)
async def comment(post_id: int, payload: CommentIn, current_user: dict = Depends(get_current_user)):
    if not await get_post(post_id):
        raise HTTPException(404, 'Post not found')
    await ensure_profile(current_user['id'])
    c = await create_comment(current_user['id'], post_id, payload.content, payload.is_anonymous)
    logger.info({'msg': 'comment_created', 'post_id': post_id, 'comment_id': c['id']})
    return c


@router.put('/{post_id}/reaction', response_model=ReactionOut)
async def put_reaction(post_id: int, payload: ReactionIn, current_user: dict = Depends(get_current_user)):
    if not await get_post(post_id):
        raise HTTPException(404, 'Post not found')
    await ensure_profile(current_user['id'])
    stored = await set_reaction(post_id, current_user['id'], payload.type)
    REACTIONS_SET.labels(type=stored or 'none').inc()
    return {'post_id': post_id, 'user_id': current_user['id'], 'type': stored}


@router.get('/{post_id}/reactions', response_model=ReactionSummaryOut)
async def get_reactions(post_id: int, current_user: dict = Depends(get_current_user)):
    if not await get_post(post_id):
        raise HTTPException(404, 'Post not found')
    return await reaction_summary(post_id, current_user['id'])
