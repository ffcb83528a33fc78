from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List, Optional

from ..crud import (
    list_notifications,
    unread_count,
    mark_notification_read,
    mark_all_read,
    delete_notification,
)
from ..auth import get_current_user
from ..schemas.notifications import NotificationOut, UnreadCountOut, ActionOkOut

router = APIRouter()


@router.get('/', response_model=List[NotificationOut])
async def my_notifications(
    limit: int = Query(50, ge=1, le=200),
    only_unread: bool = False,
    church_id: Optional[str] = None,
    current_user: dict = Depends(get_current_user)
):
    return await list_notifications(current_user['id'], limit=limit, only_unread=only_unread, church_id=church_id)


@router.get('/unread-count', response_model=UnreadCountOut)
async def my_unread_count(current_user: dict = Depends(get_current_user)):
    return {'count': await unread_count(current_user['id'])}


@router.post('/read-all', response_model=ActionOkOut)
async def read_all(current_user: dict = Depends(get_current_user)):
    await mark_all_read(current_user['id'])
    return {'ok': True}


@router.post('/{notification_id}/read', response_model=ActionOkOut)
async def read_one(notification_id: int, current_user: dict = Depends(get_current_user)):
    if not await mark_notification_read(current_user['id'], notification_id):
        raise HTTPException(404, 'Not found')
    return {'ok': True}


@router.delete('/{notification_id}', response_model=ActionOkOut)
async def remove(notification_id: int, current_user: dict = Depends(get_current_user)):
    if not await delete_notification(current_user['id'], notification_id):
        raise HTTPException(404, 'Not found')
    return {'ok': True}
