"""
Media upload function
Accepts a base64 payload and returns the stored object's public URL
"""
import base64
import binascii
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..auth import get_current_user
from ..cache import check_rate_limit
from ..core import UPLOADS
from ..media import MAX_UPLOAD_BYTES, InvalidObjectPath, storage_path
from ..schemas.media import MediaUploadIn, MediaUploadOut, MediaErrorOut
from ..storage import ObjectExists, StorageNotConfigured, upload_object

router = APIRouter()
logger = logging.getLogger(__name__)


def _error(status: int, message: str, outcome: str) -> JSONResponse:
    UPLOADS.labels(outcome=outcome).inc()
    return JSONResponse(status_code=status, content={'error': message})


@router.post('/upload', response_model=MediaUploadOut,
             responses={400: {'model': MediaErrorOut}, 429: {'model': MediaErrorOut}, 500: {'model': MediaErrorOut}})
async def upload(payload: MediaUploadIn, current_user: dict = Depends(get_current_user)):
    if not payload.base64 or not payload.fileName:
        return _error(400, 'Missing base64 or fileName', 'rejected')

    # Rate limiting - max 30 uploads per hour
    if not await check_rate_limit(current_user['id'], 'media_upload', limit=30, window=3600):
        return _error(429, 'Rate limit exceeded. Too many uploads.', 'rejected')

    try:
        file_bytes = base64.b64decode(payload.base64, validate=True)
    except (binascii.Error, ValueError):
        return _error(400, 'Invalid base64 payload', 'rejected')

    if len(file_bytes) > MAX_UPLOAD_BYTES:
        return _error(400, 'File is too large to upload', 'rejected')

    try:
        path = storage_path(payload.fileName, payload.pathPrefix)
    except InvalidObjectPath as e:
        return _error(400, str(e), 'rejected')

    try:
        public_url = await upload_object(path, file_bytes, payload.contentType or 'image/jpeg')
    except StorageNotConfigured as e:
        logger.error({'msg': 'storage_not_configured', 'error': str(e)})
        return _error(500, str(e), 'failed')
    except ObjectExists:
        logger.warning({'msg': 'storage_object_exists', 'path': path, 'user_id': current_user['id']})
        return _error(500, 'The resource already exists', 'failed')
    except Exception as e:
        logger.error({'msg': 'storage_upload_failed', 'path': path, 'error': str(e)})
        return _error(500, 'Unexpected error while uploading media', 'failed')

    UPLOADS.labels(outcome='stored').inc()
    logger.info({'msg': 'media_uploaded', 'path': path, 'bytes': len(file_bytes), 'user_id': current_user['id']})
    return {'publicUrl': public_url, 'path': path}
