import base64
from datetime import datetime, timedelta

import pytest
from botocore.exceptions import ClientError

from fellowship.models import AsyncSessionLocal, utcnow
from fellowship.models.stories import Story
from fellowship.crud import ensure_profile

AMEN_STICKER = {'id': 's1', 'type': 'sticker', 'value': 'AMEN', 'normalizedX': 0.5, 'normalizedY': 0.2}


def story_payload(**overrides):
    payload = {
        'media_type': 'image',
        'media_url': 'https://cdn.example.org/post_media/stories/story-1.jpg',
        'caption': 'Sunday service',
        'overlays': [AMEN_STICKER],
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_create_story_requires_auth(api):
    r = await api.post('/api/stories/', json=story_payload())
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_create_and_read_story(api, auth_headers, user_id):
    r = await api.post('/api/stories/', json=story_payload(), headers=auth_headers)
    assert r.status_code == 200, r.text
    story = r.json()
    assert story['user_id'] == user_id
    assert story['overlays'] == [dict(AMEN_STICKER, scale=1.0)]
    assert story['created_at'] and story['expires_at']

    r = await api.get(f"/api/stories/{story['id']}")
    assert r.status_code == 200
    assert r.json()['caption'] == 'Sunday service'


@pytest.mark.asyncio
async def test_blank_caption_and_no_overlays(api, auth_headers):
    r = await api.post('/api/stories/', json=story_payload(caption='   ', overlays=[]), headers=auth_headers)
    assert r.status_code == 200
    assert r.json()['caption'] is None
    assert r.json()['overlays'] is None


@pytest.mark.asyncio
@pytest.mark.parametrize('overrides', [
    {'media_type': 'gif'},
    {'media_url': ''},
    {'overlays': [dict(AMEN_STICKER, type='banner')]},
    {'overlays': [dict(AMEN_STICKER, value='HALLELUJAH')]},
    {'overlays': [AMEN_STICKER, AMEN_STICKER]},
])
async def test_create_story_rejects_bad_payload(api, auth_headers, overrides):
    r = await api.post('/api/stories/', json=story_payload(**overrides), headers=auth_headers)
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_out_of_range_overlay_clamped(api, auth_headers):
    overlay = dict(AMEN_STICKER, normalizedX=1.7, scale=0.1)
    r = await api.post('/api/stories/', json=story_payload(overlays=[overlay]), headers=auth_headers)
    assert r.status_code == 200
    stored = r.json()['overlays'][0]
    assert stored['normalizedX'] == 1.0
    assert stored['scale'] == 0.5


@pytest.mark.asyncio
async def test_active_feed_and_expiry(api, auth_headers, user_id):
    first = (await api.post('/api/stories/', json=story_payload(caption='one'), headers=auth_headers)).json()
    second = (await api.post('/api/stories/', json=story_payload(caption='two'), headers=auth_headers)).json()

    await ensure_profile('someone-else')
    async with AsyncSessionLocal() as session:
        session.add(Story(user_id='someone-else', media_type='video', media_url='https://x/old.mp4',
                          created_at=utcnow() - timedelta(hours=30),
                          expires_at=utcnow() - timedelta(hours=6)))
        await session.commit()

    r = await api.get('/api/stories/active')
    assert r.status_code == 200
    assert [s['id'] for s in r.json()] == [second['id'], first['id']]

    r = await api.get('/api/stories/feed')
    feed = r.json()
    assert len(feed) == 1
    assert feed[0]['user_id'] == user_id
    assert [s['caption'] for s in feed[0]['stories']] == ['two', 'one']

    r = await api.get('/api/stories/mine', headers=auth_headers)
    assert len(r.json()) == 2


@pytest.mark.asyncio
async def test_story_not_found(api):
    r = await api.get('/api/stories/9999')
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_layout_projects_overlays(api, auth_headers):
    story = (await api.post('/api/stories/', json=story_payload(), headers=auth_headers)).json()
    r = await api.get(f"/api/stories/{story['id']}/layout", params={'width': 300, 'height': 600})
    assert r.status_code == 200
    placed = r.json()['overlays']
    assert placed == [{'id': 's1', 'type': 'sticker', 'value': 'AMEN', 'x': 150.0, 'y': 120.0,
                       'scale': 1.0, 'highlight': False}]

    r = await api.get(f"/api/stories/{story['id']}/layout", params={'width': 0, 'height': 600})
    assert r.json()['overlays'] == []


@pytest.mark.asyncio
async def test_layout_with_malformed_stored_overlays(api, auth_headers, user_id):
    await ensure_profile(user_id)
    async with AsyncSessionLocal() as session:
        story = Story(user_id=user_id, media_type='image', media_url='https://x/a.jpg',
                      overlays=[{'id': 'x', 'type': 'text'}])
        session.add(story)
        await session.commit()
        story_id = story.id
    r = await api.get(f'/api/stories/{story_id}/layout', params={'width': 300, 'height': 600})
    assert r.status_code == 500


class TestMediaUpload:

    @pytest.fixture
    def stored(self, monkeypatch):
        calls = []

        async def fake_upload(key, body, content_type):
            calls.append((key, body, content_type))
            return f'https://cdn.example.org/post_media/{key}'

        monkeypatch.setattr('fellowship.routes.media.upload_object', fake_upload)
        return calls

    @pytest.mark.asyncio
    async def test_upload_with_prefix(self, api, auth_headers, stored):
        body = {'base64': base64.b64encode(b'jpegbytes').decode(), 'fileName': 'story-1.jpg',
                'contentType': 'image/jpeg', 'pathPrefix': 'stories'}
        r = await api.post('/api/media/upload', json=body, headers=auth_headers)
        assert r.status_code == 200, r.text
        assert r.json() == {'publicUrl': 'https://cdn.example.org/post_media/stories/story-1.jpg',
                            'path': 'stories/story-1.jpg'}
        assert stored == [('stories/story-1.jpg', b'jpegbytes', 'image/jpeg')]

    @pytest.mark.asyncio
    async def test_upload_without_prefix_is_timestamped(self, api, auth_headers, stored):
        body = {'base64': base64.b64encode(b'x').decode(), 'fileName': 'photo.png'}
        r = await api.post('/api/media/upload', json=body, headers=auth_headers)
        assert r.status_code == 200
        path = r.json()['path']
        assert path.endswith('-photo.png')
        assert stored[0][2] == 'image/jpeg'

    @pytest.mark.asyncio
    @pytest.mark.parametrize('body', [
        {'fileName': 'a.jpg'},
        {'base64': 'eA=='},
        {'base64': '!!!not base64', 'fileName': 'a.jpg'},
    ])
    async def test_upload_rejected(self, api, auth_headers, stored, body):
        r = await api.post('/api/media/upload', json=body, headers=auth_headers)
        assert r.status_code == 400
        assert r.json()['error']
        assert stored == []

    @pytest.mark.asyncio
    async def test_upload_too_large(self, api, auth_headers, stored, monkeypatch):
        monkeypatch.setattr('fellowship.routes.media.MAX_UPLOAD_BYTES', 4)
        body = {'base64': base64.b64encode(b'12345').decode(), 'fileName': 'a.jpg'}
        r = await api.post('/api/media/upload', json=body, headers=auth_headers)
        assert r.status_code == 400
        assert stored == []

    @pytest.mark.asyncio
    async def test_storage_failure(self, api, auth_headers, monkeypatch):
        async def broken(key, body, content_type):
            raise RuntimeError('bucket missing')

        monkeypatch.setattr('fellowship.routes.media.upload_object', broken)
        body = {'base64': base64.b64encode(b'x').decode(), 'fileName': 'a.jpg'}
        r = await api.post('/api/media/upload', json=body, headers=auth_headers)
        assert r.status_code == 500
        assert r.json() == {'error': 'Unexpected error while uploading media'}

    @pytest.mark.asyncio
    async def test_upload_requires_auth(self, api, stored):
        r = await api.post('/api/media/upload', json={'base64': 'eA==', 'fileName': 'a.jpg'})
        assert r.status_code == 401


@pytest.mark.asyncio
async def test_story_expires_exactly_a_day_after_creation(api, auth_headers):
    story = (await api.post('/api/stories/', json=story_payload(), headers=auth_headers)).json()
    created = datetime.fromisoformat(story['created_at'])
    expires = datetime.fromisoformat(story['expires_at'])
    assert expires - created == timedelta(hours=24)


class FakeS3:
    def __init__(self, objects):
        self.objects = objects

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def put_object(self, Bucket, Key, Body, ContentType, CacheControl, IfNoneMatch=None):
        if IfNoneMatch == '*' and Key in self.objects:
            raise ClientError(
                {'Error': {'Code': 'PreconditionFailed', 'Message': 'At least one of the pre-conditions '
                                                                    'you specified did not hold'},
                 'ResponseMetadata': {'HTTPStatusCode': 412}},
                'PutObject',
            )
        self.objects[Key] = Body


class TestMediaStorage:

    @pytest.fixture
    def bucket(self, monkeypatch):
        objects = {}
        monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'test-key')
        monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'test-secret')
        monkeypatch.setattr('fellowship.storage._client', lambda session: FakeS3(objects))
        return objects

    @pytest.mark.asyncio
    async def test_existing_object_is_not_overwritten(self, api, auth_headers, bucket):
        bucket['avatars/someone/me.jpg'] = b'original'
        body = {'base64': base64.b64encode(b'replacement').decode(), 'fileName': 'me.jpg',
                'pathPrefix': 'avatars/someone'}
        r = await api.post('/api/media/upload', json=body, headers=auth_headers)
        assert r.status_code == 500
        assert r.json() == {'error': 'The resource already exists'}
        assert bucket['avatars/someone/me.jpg'] == b'original'

    @pytest.mark.asyncio
    async def test_second_upload_to_same_path_fails(self, api, auth_headers, bucket):
        body = {'base64': base64.b64encode(b'first').decode(), 'fileName': 'story-1.jpg',
                'pathPrefix': 'stories'}
        first = await api.post('/api/media/upload', json=body, headers=auth_headers)
        assert first.status_code == 200
        body['base64'] = base64.b64encode(b'second').decode()
        second = await api.post('/api/media/upload', json=body, headers=auth_headers)
        assert second.status_code == 500
        assert bucket == {'stories/story-1.jpg': b'first'}

    @pytest.mark.asyncio
    @pytest.mark.parametrize('file_name,prefix', [
        ('me.jpg', 'avatars/../stories'),
        ('me.jpg', 'avatars//someone'),
        ('..', 'stories'),
        ('../me.jpg', None),
        ('a/b.jpg', 'stories'),
        ('me.jpg', 'stories\\..'),
    ])
    async def test_path_traversal_rejected(self, api, auth_headers, bucket, file_name, prefix):
        body = {'base64': base64.b64encode(b'x').decode(), 'fileName': file_name, 'pathPrefix': prefix}
        r = await api.post('/api/media/upload', json=body, headers=auth_headers)
        assert r.status_code == 400
        assert r.json()['error'].startswith('Invalid')
        assert bucket == {}

    @pytest.mark.asyncio
    async def test_null_content_type_defaults_to_jpeg(self, api, auth_headers, monkeypatch):
        calls = []

        async def fake_upload(key, body, content_type):
            calls.append(content_type)
            return f'https://cdn.example.org/{key}'

        monkeypatch.setattr('fellowship.routes.media.upload_object', fake_upload)
        body = {'base64': base64.b64encode(b'x').decode(), 'fileName': 'a.jpg', 'contentType': None}
        r = await api.post('/api/media/upload', json=body, headers=auth_headers)
        assert r.status_code == 200
        assert calls == ['image/jpeg']
