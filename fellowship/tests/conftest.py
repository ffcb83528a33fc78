import os
import tempfile
import uuid
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# Configure test environment before the app modules read it
TEST_DB = os.path.join(tempfile.gettempdir(), f'fellowship-test-{os.getpid()}.db')
os.environ.setdefault('DATABASE_URL', f'sqlite+aiosqlite:///{TEST_DB}')
os.environ.setdefault('JWT_SECRET', 'test-secret')
os.environ.setdefault('METRICS_ENABLED', 'false')

from fellowship.models import Base, engine  # noqa: E402
from fellowship.auth import create_access_token  # noqa: E402


@pytest_asyncio.fixture
async def db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def api(db):
    from fellowship.main import app
    async with AsyncClient(transport=ASGITransport(app=app), base_url='http://test') as ac:
        yield ac


@pytest.fixture
def user_id():
    return str(uuid.uuid4())


@pytest.fixture
def auth_headers(user_id):
    return {'Authorization': f'Bearer {create_access_token(user_id)}'}
