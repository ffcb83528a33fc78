import pytest


@pytest.mark.asyncio
async def test_healthz(api):
    res = await api.get('/healthz')
    assert res.status_code == 200
    assert res.json() == {'status': 'ok'}


@pytest.mark.asyncio
async def test_protected_route_requires_token(api):
    res = await api.get('/api/stories/mine')
    assert res.status_code == 401


@pytest.mark.asyncio
async def test_garbage_token_rejected(api):
    res = await api.get('/api/stories/mine', headers={'Authorization': 'Bearer not-a-jwt'})
    assert res.status_code == 401
