"""
Fellowship API client
Client-side story flow: local media checks, upload through the media function,
story insertion, storage uploads, optimistic reactions and drill grading
"""
import base64
import logging
from typing import Any, Dict, Iterable, List, Optional, Union
from urllib.parse import quote

import httpx

from .media import VideoCompressor, prepare_story_media, story_file_name
from .overlays import OverlayList
from .reactions import ReactionLedger

logger = logging.getLogger(__name__)

GENERIC_UPLOAD_ERROR = (
    "We couldn’t upload this story. If it’s a video, please trim it to around 15 seconds "
    "and export as 720p, then try again."
)
GRADE_DRILL_FUNCTION = 'faith-coach-grade-drill'


class ClientError(Exception):
    """A backend call failed; the message is safe to show to the user."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class UploadFailed(ClientError):
    pass


class StoryError(ClientError):
    pass


class ReactionFailed(ClientError):
    pass


def _error_message(response: httpx.Response, default: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return default
    if isinstance(body, dict):
        return body.get('error') or body.get('detail') or default
    return default


class FellowshipClient:
    def __init__(self, base_url: str, access_token: Optional[str] = None,
                 storage_url: Optional[str] = None, functions_url: Optional[str] = None,
                 api_key: Optional[str] = None, bucket: str = 'post_media',
                 transport: Optional[httpx.AsyncBaseTransport] = None, timeout: float = 60.0):
        base_url = base_url.rstrip('/')
        self.storage_url = (storage_url or f'{base_url}/storage/v1').rstrip('/')
        self.functions_url = (functions_url or f'{base_url}/functions/v1').rstrip('/')
        self.bucket = bucket
        headers = {}
        if access_token:
            headers['Authorization'] = f'Bearer {access_token}'
        if api_key:
            headers['apikey'] = api_key
        self._http = httpx.AsyncClient(base_url=base_url, headers=headers, transport=transport, timeout=timeout)
        # Active stories as last seen by this client, newest first
        self.stories: List[Dict[str, Any]] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.aclose()

    async def aclose(self):
        await self._http.aclose()

    # ---- stories ----

    async def upload_story_media(self, media_type: str, data: bytes,
                                 compress_video: Optional[VideoCompressor] = None) -> Dict[str, str]:
        prepared = prepare_story_media(media_type, data, compress_video)
        body = {
            'base64': base64.b64encode(prepared.data).decode('ascii'),
            'fileName': story_file_name(prepared.extension),
            'contentType': prepared.content_type,
            'pathPrefix': 'stories',
        }
        response = await self._http.post('/api/media/upload', json=body)
        if response.status_code >= 400:
            message = _error_message(response, GENERIC_UPLOAD_ERROR)
            logger.error({'msg': 'story_upload_failed', 'status': response.status_code, 'error': message})
            raise UploadFailed(message, response.status_code)
        try:
            body = response.json()
        except ValueError:
            logger.error({'msg': 'story_upload_unreadable', 'status': response.status_code})
            raise UploadFailed(GENERIC_UPLOAD_ERROR, response.status_code)
        public_url = body.get('publicUrl') if isinstance(body, dict) else None
        if not public_url:
            raise UploadFailed('The upload function did not return a publicUrl', response.status_code)
        return {'publicUrl': public_url, 'contentType': prepared.content_type}

    async def create_story_record(self, media_type: str, media_url: str, caption: Optional[str] = None,
                                  overlays: Optional[List[dict]] = None) -> Dict[str, Any]:
        payload = {
            'media_type': media_type,
            'media_url': media_url,
            'caption': caption or None,
            'overlays': overlays or None,
        }
        response = await self._http.post('/api/stories/', json=payload)
        if response.status_code >= 400:
            logger.error({'msg': 'create_story_record_failed', 'status': response.status_code,
                          'body': response.text[:500]})
            raise StoryError('We saved the media but could not create the story record.', response.status_code)
        try:
            return response.json()
        except ValueError:
            raise StoryError('We saved the media but could not read the new story back.', response.status_code)

    async def create_story(self, media_type: str, data: bytes, caption: Optional[str] = None,
                           overlays: Union[OverlayList, Iterable[dict], None] = None,
                           compress_video: Optional[VideoCompressor] = None) -> Dict[str, Any]:
        """Upload the media, then insert the story row that points at it."""
        if isinstance(overlays, OverlayList):
            overlays = overlays.to_json()
        elif overlays is not None:
            overlays = list(overlays)
        uploaded = await self.upload_story_media(media_type, data, compress_video)
        story = await self.create_story_record(media_type, uploaded['publicUrl'], caption, overlays)
        self.stories.insert(0, story)
        logger.info({'msg': 'story_posted', 'story_id': story.get('id'), 'media_type': media_type})
        return story

    async def fetch_active_stories(self) -> List[Dict[str, Any]]:
        response = await self._http.get('/api/stories/active')
        response.raise_for_status()
        self.stories = response.json() or []
        return self.stories

    # ---- storage ----

    def public_object_url(self, object_path: str, bucket: Optional[str] = None) -> str:
        return f'{self.storage_url}/object/public/{bucket or self.bucket}/{quote(object_path)}'

    async def upload_binary(self, object_path: str, data: bytes, content_type: str,
                            bucket: Optional[str] = None) -> str:
        """Raw upload to the storage object endpoint; retries once with PUT when POST is refused."""
        url = f'{self.storage_url}/object/{bucket or self.bucket}/{quote(object_path)}'
        headers = {'Content-Type': content_type, 'x-upsert': 'true'}

        response = await self._http.post(url, content=data, headers=headers)
        if response.status_code >= 400:
            logger.info({'msg': 'storage_post_refused', 'status': response.status_code, 'path': object_path})
            response = await self._http.put(url, content=data, headers=headers)

        if response.status_code < 200 or response.status_code >= 300:
            logger.error({'msg': 'storage_upload_failed', 'status': response.status_code,
                          'path': object_path, 'content_type': content_type})
            raise UploadFailed(f'Upload failed ({response.status_code}).', response.status_code)
        return self.public_object_url(object_path, bucket)

    # ---- reactions ----

    async def set_reaction(self, ledger: ReactionLedger, post_id: int, requested: Optional[str]) -> Optional[str]:
        final = ledger.apply(post_id, requested)
        try:
            response = await self._http.put(f'/api/posts/{post_id}/reaction', json={'type': final})
            response.raise_for_status()
        except httpx.HTTPError as e:
            ledger.fail(post_id)
            logger.error({'msg': 'reaction_failed', 'post_id': post_id, 'error': str(e)})
            raise ReactionFailed('We couldn’t update your reaction. Please try again.')
        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            ledger.fail(post_id)
            logger.error({'msg': 'reaction_unreadable', 'post_id': post_id, 'status': response.status_code})
            raise ReactionFailed('We couldn’t update your reaction. Please try again.', response.status_code)
        stored = body.get('type')
        ledger.confirm(post_id, stored)
        return stored

    # ---- functions ----

    async def grade_drill(self, drill: Dict[str, Any], user_answer: str) -> Dict[str, Any]:
        """Call the grading function; failures come back as {'ok': False, ...}, never raised."""
        url = f'{self.functions_url}/{GRADE_DRILL_FUNCTION}'
        try:
            response = await self._http.post(url, json={'drill': drill, 'userAnswer': user_answer})
        except httpx.HTTPError as e:
            logger.error({'msg': 'grade_drill_thrown', 'error': str(e)})
            return {'ok': False, 'error': str(e), 'status': 'thrown'}

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.status_code >= 400:
            message = _error_message(response, response.reason_phrase or 'Edge function returned non-2xx')
            logger.error({'msg': 'grade_drill_failed', 'status': response.status_code, 'error': message})
            return {'ok': False, 'error': message, 'status': response.status_code, 'raw': data}

        if not isinstance(data, dict) or not data.get('ok'):
            error = data.get('error') if isinstance(data, dict) else None
            return {'ok': False, 'error': error or 'Grading failed.', 'status': response.status_code, 'raw': data}

        return {'ok': True, 'grade': data.get('grade'), 'raw': data}
