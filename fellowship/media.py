"""
Story media preparation
Size ceilings, image validation and naming rules applied before anything goes over the wire
"""
import io
import logging
import os
import time
from typing import Callable, NamedTuple, Optional

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 8 * 1024 * 1024  # 8MB
MAX_VIDEO_BYTES = 8 * 1024 * 1024  # 8MB target after compression
# Upper bound accepted by the upload function (decoded bytes)
MAX_UPLOAD_BYTES = int(os.getenv('MAX_UPLOAD_BYTES', str(MAX_VIDEO_BYTES)))

MEDIA_TYPES = ('image', 'video')

VIDEO_CONTENT_TYPES = {
    'mov': 'video/quicktime',
    'm4v': 'video/x-m4v',
}


class MediaError(Exception):
    """Base class for media rejected locally; the message is user-facing."""


class UnsupportedMedia(MediaError):
    pass


class MediaTooLarge(MediaError):
    pass


class PreparedMedia(NamedTuple):
    data: bytes
    content_type: str
    extension: str


VideoCompressor = Callable[[bytes], bytes]


def validate_image(data: bytes) -> None:
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError):
        raise UnsupportedMedia('That file does not look like an image.')


def compress_video_if_needed(data: bytes, max_bytes: int, compress: Optional[VideoCompressor]) -> bytes:
    logger.info({'msg': 'story_video_size', 'bytes': len(data)})
    if len(data) <= max_bytes:
        return data
    if compress is None:
        raise MediaTooLarge(
            'This video is too large for stories. Please trim it to about 15 seconds '
            'and export/save it as 720p (HD), then try again.'
        )
    try:
        compressed = compress(data)
    except Exception as e:
        logger.error({'msg': 'story_video_compression_failed', 'error': str(e)})
        raise MediaError(
            'We couldn’t compress this video for stories. Please try a shorter clip saved as 720p (HD).'
        ) from e
    logger.info({'msg': 'story_video_compressed', 'bytes': len(compressed)})
    if len(compressed) > max_bytes:
        raise MediaTooLarge(
            'Even after compression this video is still too large for stories. Please trim it to '
            'about 15 seconds and export/save it as 720p (HD), then try again.'
        )
    return compressed


def prepare_story_media(media_type: str, data: bytes,
                        compress_video: Optional[VideoCompressor] = None) -> PreparedMedia:
    """Apply the story size ceilings; raises MediaError subclasses, never touches the network."""
    if media_type not in MEDIA_TYPES:
        raise UnsupportedMedia(f'Unsupported mediaType for story: {media_type}')
    if not data:
        raise UnsupportedMedia('Selected file is empty.')

    if media_type == 'image':
        if len(data) > MAX_IMAGE_BYTES:
            raise MediaTooLarge(
                'That photo is too large to upload as a story. Please choose a smaller image (under about 8MB).'
            )
        validate_image(data)
        return PreparedMedia(data, 'image/jpeg', 'jpg')

    data = compress_video_if_needed(data, MAX_VIDEO_BYTES, compress_video)
    return PreparedMedia(data, 'video/mp4', 'mp4')


def content_type_for_video(file_name: str) -> str:
    clean = file_name.split('?')[0]
    ext = clean.rsplit('.', 1)[-1].lower() if '.' in clean else ''
    return VIDEO_CONTENT_TYPES.get(ext, 'video/mp4')


def story_file_name(extension: str, now_ms: Optional[int] = None) -> str:
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    return f'story-{now_ms}.{extension}'


class InvalidObjectPath(ValueError):
    pass


def _check_segment(segment: str, what: str):
    if not segment or segment in ('.', '..') or '\\' in segment:
        raise InvalidObjectPath(f'Invalid {what}')


def storage_path(file_name: str, path_prefix: Optional[str] = None, now_ms: Optional[int] = None) -> str:
    """`<prefix>/<file>` when a prefix is given, otherwise a timestamped flat name.

    Raises InvalidObjectPath for traversal or empty segments; the file name must be a single segment.
    """
    if '/' in file_name:
        raise InvalidObjectPath('Invalid fileName')
    _check_segment(file_name, 'fileName')
    if path_prefix and path_prefix.strip():
        prefix = path_prefix.strip().strip('/')
        for segment in prefix.split('/'):
            _check_segment(segment, 'pathPrefix')
        return f'{prefix}/{file_name}'
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    return f'{now_ms}-{file_name}'
