import base64
import io
import json

import httpx
import pytest
from PIL import Image

from fellowship.client import FellowshipClient, ReactionFailed, StoryError, UploadFailed
from fellowship.media import MAX_VIDEO_BYTES, MediaTooLarge
from fellowship.overlays import OverlayList
from fellowship.reactions import ReactionLedger, ReactionStatus

BASE = 'https://fellowship.example.org'


def jpeg_bytes():
    buf = io.BytesIO()
    Image.new('RGB', (8, 8), (10, 120, 200)).save(buf, format='JPEG')
    return buf.getvalue()


def make_client(handler):
    requests = []

    def record(request):
        requests.append(request)
        return handler(request)

    client = FellowshipClient(BASE, access_token='token', api_key='anon', transport=httpx.MockTransport(record))
    return client, requests


def story_api(request):
    if request.url.path == '/api/media/upload':
        body = json.loads(request.content)
        return httpx.Response(200, json={'publicUrl': f"https://cdn/{body['pathPrefix']}/{body['fileName']}",
                                         'path': f"{body['pathPrefix']}/{body['fileName']}"})
    if request.url.path == '/api/stories/':
        body = json.loads(request.content)
        return httpx.Response(200, json=dict(body, id=7, user_id='u1'))
    return httpx.Response(404)


@pytest.mark.asyncio
async def test_oversize_video_never_hits_network():
    client, requests = make_client(story_api)
    client.stories = [{'id': 1}]
    async with client:
        with pytest.raises(MediaTooLarge):
            await client.create_story('video', b'v' * (MAX_VIDEO_BYTES + 1))
    assert requests == []
    assert client.stories == [{'id': 1}]


@pytest.mark.asyncio
async def test_create_story_uploads_then_inserts():
    client, requests = make_client(story_api)
    client.stories = [{'id': 1}]
    overlays = OverlayList().add_sticker('AMEN', overlay_id='s1')
    async with client:
        story = await client.create_story('image', jpeg_bytes(), caption='Amen!', overlays=overlays)

    upload, insert = requests
    upload_body = json.loads(upload.content)
    assert upload.headers['Authorization'] == 'Bearer token'
    assert upload.headers['apikey'] == 'anon'
    assert upload_body['contentType'] == 'image/jpeg'
    assert upload_body['pathPrefix'] == 'stories'
    assert upload_body['fileName'].startswith('story-') and upload_body['fileName'].endswith('.jpg')
    assert base64.b64decode(upload_body['base64']) == jpeg_bytes()

    insert_body = json.loads(insert.content)
    assert insert_body['media_url'].startswith('https://cdn/stories/story-')
    assert insert_body['overlays'] == overlays.to_json()
    assert story['id'] == 7
    assert [s['id'] for s in client.stories] == [7, 1]


@pytest.mark.asyncio
async def test_upload_error_message_is_surfaced():
    client, requests = make_client(lambda r: httpx.Response(400, json={'error': 'Missing base64 or fileName'}))
    async with client:
        with pytest.raises(UploadFailed) as exc:
            await client.create_story('image', jpeg_bytes())
    assert str(exc.value) == 'Missing base64 or fileName'
    assert exc.value.status == 400
    assert len(requests) == 1
    assert client.stories == []


@pytest.mark.asyncio
async def test_upload_error_without_body_uses_generic_message():
    client, _ = make_client(lambda r: httpx.Response(502, text='bad gateway'))
    async with client:
        with pytest.raises(UploadFailed) as exc:
            await client.upload_story_media('image', jpeg_bytes())
    assert '720p' in str(exc.value)


@pytest.mark.asyncio
async def test_insert_failure_leaves_stories_untouched():
    def handler(request):
        if request.url.path == '/api/stories/':
            return httpx.Response(500, json={'detail': 'db down'})
        return story_api(request)

    client, requests = make_client(handler)
    async with client:
        with pytest.raises(StoryError):
            await client.create_story('image', jpeg_bytes())
    assert len(requests) == 2
    assert client.stories == []


@pytest.mark.asyncio
async def test_fetch_active_stories():
    client, _ = make_client(lambda r: httpx.Response(200, json=[{'id': 3}, {'id': 2}]))
    async with client:
        assert await client.fetch_active_stories() == [{'id': 3}, {'id': 2}]
    assert client.stories == [{'id': 3}, {'id': 2}]


class TestUploadBinary:

    @pytest.mark.asyncio
    async def test_post_success(self):
        client, requests = make_client(lambda r: httpx.Response(200, json={'Key': 'x'}))
        async with client:
            url = await client.upload_binary('stories/clip.mov', b'data', 'video/quicktime')
        assert url == f'{BASE}/storage/v1/object/public/post_media/stories/clip.mov'
        assert [r.method for r in requests] == ['POST']
        assert requests[0].headers['x-upsert'] == 'true'
        assert requests[0].headers['Content-Type'] == 'video/quicktime'

    @pytest.mark.asyncio
    async def test_falls_back_to_put(self):
        client, requests = make_client(
            lambda r: httpx.Response(405) if r.method == 'POST' else httpx.Response(200)
        )
        async with client:
            await client.upload_binary('a.jpg', b'data', 'image/jpeg')
        assert [r.method for r in requests] == ['POST', 'PUT']

    @pytest.mark.asyncio
    async def test_both_refused(self):
        client, requests = make_client(lambda r: httpx.Response(403))
        async with client:
            with pytest.raises(UploadFailed) as exc:
                await client.upload_binary('a.jpg', b'data', 'image/jpeg')
        assert exc.value.status == 403
        assert len(requests) == 2


class TestReactions:

    @pytest.mark.asyncio
    async def test_confirmed(self):
        client, requests = make_client(lambda r: httpx.Response(200, json={'post_id': 5, 'user_id': 'me', 'type': 'pray'}))
        ledger = ReactionLedger('me')
        ledger.load(5, [{'user_id': 'other', 'type': 'pray'}])
        async with client:
            assert await client.set_reaction(ledger, 5, 'pray') == 'pray'
        assert json.loads(requests[0].content) == {'type': 'pray'}
        assert ledger.counts(5)['pray'] == 2
        assert ledger.status[5] is ReactionStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_same_reaction_toggles_off(self):
        client, requests = make_client(lambda r: httpx.Response(200, json={'post_id': 5, 'user_id': 'me', 'type': None}))
        ledger = ReactionLedger('me')
        ledger.load(5, [{'user_id': 'me', 'type': 'like'}])
        async with client:
            assert await client.set_reaction(ledger, 5, 'like') is None
        assert json.loads(requests[0].content) == {'type': None}
        assert ledger.mine(5) is None

    @pytest.mark.asyncio
    async def test_failure_rolls_back(self):
        client, _ = make_client(lambda r: httpx.Response(500))
        ledger = ReactionLedger('me')
        ledger.load(5, [{'user_id': 'me', 'type': 'like'}])
        async with client:
            with pytest.raises(ReactionFailed):
                await client.set_reaction(ledger, 5, 'love')
        assert ledger.mine(5) == 'like'
        assert ledger.counts(5) == {'like': 1, 'love': 0, 'pray': 0}
        assert ledger.status[5] is ReactionStatus.FAILED

    def test_unknown_reaction_type(self):
        with pytest.raises(ValueError):
            ReactionLedger('me').apply(1, 'wow')


class TestGradeDrill:

    @pytest.mark.asyncio
    async def test_success(self):
        client, requests = make_client(lambda r: httpx.Response(200, json={'ok': True, 'grade': {'score': 4}}))
        async with client:
            result = await client.grade_drill({'id': 'd1'}, 'Love is patient')
        assert result['ok'] is True
        assert result['grade'] == {'score': 4}
        assert requests[0].url.path == '/functions/v1/faith-coach-grade-drill'
        assert json.loads(requests[0].content) == {'drill': {'id': 'd1'}, 'userAnswer': 'Love is patient'}

    @pytest.mark.asyncio
    async def test_http_error_is_returned(self):
        client, _ = make_client(lambda r: httpx.Response(500, json={'error': 'model unavailable'}))
        async with client:
            result = await client.grade_drill({}, 'x')
        assert result == {'ok': False, 'error': 'model unavailable', 'status': 500,
                          'raw': {'error': 'model unavailable'}}

    @pytest.mark.asyncio
    async def test_not_ok_body(self):
        client, _ = make_client(lambda r: httpx.Response(200, json={'ok': False}))
        async with client:
            result = await client.grade_drill({}, 'x')
        assert result['ok'] is False
        assert result['error'] == 'Grading failed.'

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def boom(request):
            raise httpx.ConnectError('offline', request=request)

        client, _ = make_client(boom)
        async with client:
            result = await client.grade_drill({}, 'x')
        assert result['ok'] is False
        assert result['status'] == 'thrown'


class TestUnreadableResponses:

    @pytest.mark.asyncio
    async def test_reaction_with_html_body_rolls_back(self):
        client, _ = make_client(lambda r: httpx.Response(200, text='<html>proxy</html>'))
        ledger = ReactionLedger('me')
        ledger.load(5, [{'user_id': 'me', 'type': 'like'}])
        async with client:
            with pytest.raises(ReactionFailed):
                await client.set_reaction(ledger, 5, 'love')
        assert ledger.status[5] is ReactionStatus.FAILED
        assert ledger.mine(5) == 'like'

    @pytest.mark.asyncio
    async def test_upload_with_html_body(self):
        client, _ = make_client(lambda r: httpx.Response(200, text='<html>proxy</html>'))
        async with client:
            with pytest.raises(UploadFailed) as exc:
                await client.create_story('image', jpeg_bytes())
        assert exc.value.status == 200
        assert client.stories == []

    @pytest.mark.asyncio
    async def test_story_insert_with_html_body(self):
        def handler(request):
            if request.url.path == '/api/stories/':
                return httpx.Response(201, text='created')
            return story_api(request)

        client, _ = make_client(handler)
        async with client:
            with pytest.raises(StoryError):
                await client.create_story('image', jpeg_bytes())
        assert client.stories == []
