from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError
from datetime import datetime, timezone
from typing import List
import logging

from ..schemas.stories import StoryCreateIn, StoryOut, StoryBucket, StoryLayoutOut
from ..crud import create_story_record, ensure_profile, get_story, list_active_stories
from ..auth import get_current_user
from ..cache import cache_active_stories, get_cached_active_stories, invalidate_active_stories
from ..core import STORIES_CREATED
from ..overlays import CanvasRect, OverlayList, group_stories_by_user, render

router = APIRouter()
logger = logging.getLogger(__name__)


def _still_active(row: dict) -> bool:
    expires_at = row.get('expires_at')
    if not expires_at:
        return False
    if isinstance(expires_at, str):
        expires_at = datetime.fromisoformat(expires_at)
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at > datetime.now(timezone.utc)


async def _active_stories():
    cached = await get_cached_active_stories()
    if cached is not None:
        return [row for row in cached if _still_active(row)]
    stories = await list_active_stories()
    await cache_active_stories(jsonable_encoder(stories))
    return stories


@router.post('/', response_model=StoryOut)
async def create(payload: StoryCreateIn, current_user: dict = Depends(get_current_user)):
    await ensure_profile(current_user['id'])
    overlays = [o.to_json() for o in payload.overlays] if payload.overlays else None
    story = await create_story_record(
        current_user['id'], payload.media_type, payload.media_url, payload.caption, overlays
    )
    STORIES_CREATED.labels(media_type=payload.media_type).inc()
    await invalidate_active_stories()
    logger.info({'msg': 'story_created', 'story_id': story['id'], 'user_id': current_user['id'],
                 'overlays': len(overlays or [])})
    return story


@router.get('/active', response_model=List[StoryOut])
async def list_active():
    return await _active_stories()


@router.get('/feed', response_model=List[StoryBucket])
async def feed():
    return group_stories_by_user(await _active_stories())


@router.get('/mine', response_model=List[StoryOut])
async def list_mine(current_user: dict = Depends(get_current_user)):
    return await list_active_stories(current_user['id'])


@router.get('/{story_id}', response_model=StoryOut)
async def read(story_id: int):
    story = await get_story(story_id)
    if not story:
        raise HTTPException(404, 'Story not found')
    return story


@router.get('/{story_id}/layout', response_model=StoryLayoutOut)
async def layout(story_id: int, width: float = Query(..., ge=0), height: float = Query(..., ge=0)):
    story = await get_story(story_id)
    if not story:
        raise HTTPException(404, 'Story not found')
    try:
        overlays = OverlayList.from_json(story['overlays'])
    except (ValidationError, ValueError) as e:
        logger.error({'msg': 'stored_overlays_invalid', 'story_id': story_id, 'error': str(e)})
        raise HTTPException(500, 'Stored overlays are malformed')
    placed = render(overlays, CanvasRect(0, 0, width, height))
    return {
        'story_id': story_id,
        'width': width,
        'height': height,
        'overlays': [
            {'id': p.id, 'type': p.kind, 'value': p.value, 'x': p.x, 'y': p.y,
             'scale': p.scale, 'highlight': p.highlight}
            for p in placed
        ],
    }
