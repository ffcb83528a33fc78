import re
from typing import Optional

_SHORT_LINK = re.compile(r'youtu\.be/([^?&/]+)', re.IGNORECASE)
_SHORTS = re.compile(r'shorts/([^?&/]+)', re.IGNORECASE)
_WATCH = re.compile(r'[?&]v=([^&]+)', re.IGNORECASE)
_SCHEME = re.compile(r'^https?://', re.IGNORECASE)
_SCHEME_AND_WWW = re.compile(r'^https?://(www\.)?', re.IGNORECASE)


def get_video_id(url: Optional[str]) -> Optional[str]:
    """Extract the video id from youtu.be, /shorts/ and watch?v= links."""
    if not url:
        return None
    url = str(url)
    lower = url.lower()
    if 'youtu.be/' in lower:
        match = _SHORT_LINK.search(url)
    elif 'youtube.com' in lower and '/shorts/' in lower:
        match = _SHORTS.search(url)
    elif 'youtube.com' in lower:
        match = _WATCH.search(url)
    else:
        return None
    return match.group(1) if match else None


def get_thumbnail_url(url: Optional[str]) -> Optional[str]:
    video_id = get_video_id(url)
    if not video_id:
        return None
    return f'https://img.youtube.com/vi/{video_id}/hqdefault.jpg'


def get_embed_url(url: Optional[str]) -> Optional[str]:
    """Embeddable player URL, or None when the link should be opened externally instead."""
    video_id = get_video_id(url)
    if not video_id:
        return None
    return f'https://www.youtube.com/embed/{video_id}?autoplay=1&playsinline=1&modestbranding=1&rel=0'


def get_domain(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    without_scheme = _SCHEME_AND_WWW.sub('', str(url))
    return without_scheme.split('/')[0] or None


def ensure_scheme(url: str) -> str:
    return url if _SCHEME.match(url) else f'https://{url}'
