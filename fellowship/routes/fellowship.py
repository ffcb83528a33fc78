from fastapi import APIRouter, Depends, HTTPException
from typing import List
import logging

from ..schemas.fellowship import FollowOut, FollowRequestOut, ProfileOut
from ..schemas.notifications import ActionOkOut
from ..crud import (
    create_notification,
    ensure_profile,
    get_profile,
    list_fellowship,
    list_follow_requests,
    remove_fellowship,
    respond_follow_request,
    send_follow_request,
)
from ..auth import get_current_user
from ..cache import check_rate_limit
from ..core import FOLLOW_EVENTS

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get('/', response_model=List[ProfileOut])
async def my_fellowship(current_user: dict = Depends(get_current_user)):
    return await list_fellowship(current_user['id'])


@router.get('/requests', response_model=List[FollowRequestOut])
async def incoming_requests(current_user: dict = Depends(get_current_user)):
    return await list_follow_requests(current_user['id'])


@router.post('/{user_id}/request', response_model=FollowOut)
async def request_fellowship(user_id: str, current_user: dict = Depends(get_current_user)):
    # Rate limiting - max 20 requests per hour
    if not await check_rate_limit(current_user['id'], 'fellowship_request', limit=20, window=3600):
        raise HTTPException(429, 'Rate limit exceeded. Too many fellowship requests.')
    if user_id == current_user['id']:
        raise HTTPException(400, 'You cannot send a fellowship request to yourself')

    if not await get_profile(user_id):
        raise HTTPException(404, 'User not found')
    await ensure_profile(current_user['id'])
    fr = await send_follow_request(current_user['id'], user_id)
    if not fr:
        raise HTTPException(409, 'A fellowship request already exists')

    await create_notification(
        user_id, 'fellowship_request', 'New fellowship request',
        'Someone would like to join your fellowship.', related_user_id=current_user['id'],
    )
    FOLLOW_EVENTS.labels(action='request').inc()
    logger.info({'msg': 'fellowship_requested', 'from': current_user['id'], 'to': user_id})
    return fr


@router.post('/requests/{request_id}/accept', response_model=ActionOkOut)
async def accept(request_id: int, current_user: dict = Depends(get_current_user)):
    fr = await respond_follow_request(current_user['id'], request_id, accept=True)
    if not fr:
        raise HTTPException(404, 'Not found')
    await create_notification(
        fr.follower_id, 'fellowship_accepted', 'Fellowship accepted',
        'Your fellowship request was accepted.', related_user_id=current_user['id'],
    )
    FOLLOW_EVENTS.labels(action='accept').inc()
    return {'ok': True}


@router.post('/requests/{request_id}/decline', response_model=ActionOkOut)
async def decline(request_id: int, current_user: dict = Depends(get_current_user)):
    if not await respond_follow_request(current_user['id'], request_id, accept=False):
        raise HTTPException(404, 'Not found')
    FOLLOW_EVENTS.labels(action='decline').inc()
    return {'ok': True}


@router.delete('/{user_id}', response_model=ActionOkOut)
async def unfollow(user_id: str, current_user: dict = Depends(get_current_user)):
    if not await remove_fellowship(current_user['id'], user_id):
        raise HTTPException(404, 'Not found')
    FOLLOW_EVENTS.labels(action='remove').inc()
    return {'ok': True}
