"""
Link previews for URL posts
YouTube links are resolved locally; other pages are fetched once and read for
their Open Graph / Twitter card tags
"""
import html
import ipaddress
import logging
import re
from typing import Any, Dict, Optional
from urllib.parse import urljoin, urlparse

import httpx

from .youtube import ensure_scheme, get_domain, get_embed_url, get_thumbnail_url, get_video_id

logger = logging.getLogger(__name__)

USER_AGENT = ('Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
              '(KHTML, like Gecko) Chrome/122 Safari/537.36')
# pages are only read up to here; the head is all we need
MAX_HTML_CHARS = 512 * 1024
MAX_REDIRECTS = 3

_TITLE = re.compile(r'<title[^>]*>([\s\S]*?)</title>', re.IGNORECASE)


class PreviewRefused(ValueError):
    pass


def normalize_url(raw: Optional[str]) -> str:
    s = str(raw or '').strip()
    return ensure_scheme(s) if s else ''


def link_info(url: Optional[str]) -> Optional[Dict[str, Any]]:
    """What a post card needs to show a link without fetching it."""
    if not url:
        return None
    url = normalize_url(url)
    return {
        'url': url,
        'domain': get_domain(url),
        'video_id': get_video_id(url),
        'thumbnail_url': get_thumbnail_url(url),
        'embed_url': get_embed_url(url),
    }


def _meta(page: str, key: str, attr: str = 'property') -> Optional[str]:
    pattern = re.compile(
        rf'<meta\s+[^>]*{attr}\s*=\s*["\']{re.escape(key)}["\'][^>]*content\s*=\s*["\']([^"\']+)["\'][^>]*>',
        re.IGNORECASE,
    )
    match = pattern.search(page)
    return html.unescape(match.group(1)) if match else None


def _title(page: str) -> Optional[str]:
    match = _TITLE.search(page)
    if not match:
        return None
    return re.sub(r'\s+', ' ', html.unescape(match.group(1))).strip() or None


def _first(*values: Optional[str]) -> Optional[str]:
    for v in values:
        if v and v.strip():
            return v.strip()
    return None


def absolutize(maybe_relative: Optional[str], base_url: str) -> Optional[str]:
    if not maybe_relative or not maybe_relative.strip():
        return None
    s = maybe_relative.strip()
    if s.startswith('//'):
        return f'https:{s}'
    return urljoin(base_url, s)


def build_preview(input_url: str, final_url: str, page: str) -> Dict[str, Any]:
    image = absolutize(_first(_meta(page, 'og:image'), _meta(page, 'twitter:image', 'name')), final_url)
    is_video = _meta(page, 'og:video') or _meta(page, 'twitter:player', 'name')
    return {
        'ok': True,
        'inputUrl': input_url,
        'finalUrl': final_url,
        'domain': get_domain(final_url),
        'title': _first(_meta(page, 'og:title'), _meta(page, 'twitter:title', 'name'), _title(page)),
        'description': _first(_meta(page, 'og:description'), _meta(page, 'twitter:description', 'name'),
                              _meta(page, 'description', 'name')),
        'image': image,
        'siteName': _first(_meta(page, 'og:site_name')),
        'type': 'video' if is_video else 'website',
    }


def youtube_preview(url: str) -> Optional[Dict[str, Any]]:
    video_id = get_video_id(url)
    if not video_id:
        return None
    return {
        'ok': True,
        'inputUrl': url,
        'finalUrl': url,
        'domain': get_domain(url),
        'title': None,
        'description': None,
        'image': get_thumbnail_url(url),
        'siteName': 'YouTube',
        'type': 'video',
        'embedUrl': get_embed_url(url),
    }


def check_fetchable(url: str):
    """Only public http(s) hosts are fetched."""
    parsed = urlparse(url)
    if parsed.scheme not in ('http', 'https') or not parsed.hostname:
        raise PreviewRefused('Only http(s) links can be previewed')
    host = parsed.hostname.lower()
    if host == 'localhost' or host.endswith('.localhost') or host.endswith('.internal'):
        raise PreviewRefused('Link host is not public')
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return
    if not address.is_global:
        raise PreviewRefused('Link host is not public')


async def _get_following_redirects(http: httpx.AsyncClient, url: str) -> httpx.Response:
    # every hop is checked, not just the first
    for _ in range(MAX_REDIRECTS + 1):
        check_fetchable(url)
        response = await http.get(url)
        if not response.is_redirect:
            return response
        url = str(response.url.join(response.headers['location']))
    raise PreviewRefused('Too many redirects')


async def fetch_preview(raw_url: str, transport: Optional[httpx.AsyncBaseTransport] = None,
                        timeout: float = 8.0) -> Dict[str, Any]:
    """Never raises; a failed fetch comes back as {'ok': False, 'error': ...}."""
    url = normalize_url(raw_url)
    if not url:
        return {'ok': False, 'inputUrl': raw_url or '', 'error': 'Missing url'}

    preview = youtube_preview(url)
    if preview:
        return preview

    try:
        async with httpx.AsyncClient(transport=transport, timeout=timeout,
                                     headers={'User-Agent': USER_AGENT,
                                              'Accept': 'text/html,application/xhtml+xml,*/*;q=0.8'}) as http:
            response = await _get_following_redirects(http, url)
        page = response.text[:MAX_HTML_CHARS]
        return build_preview(url, str(response.url), page)
    except (PreviewRefused, httpx.HTTPError) as e:
        logger.info({'msg': 'link_preview_failed', 'url': url, 'error': str(e)})
        return {'ok': False, 'inputUrl': url, 'domain': get_domain(url), 'error': str(e)}
