"""Fixtures communes / Shared fixtures: base SQLite temporaire par test / fresh temp SQLite DB per test."""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from billboards.api.deps import get_session_factory
from billboards.database import get_db, init_db
from billboards.main import app
from billboards.models.billboard import Billboard
from billboards.rate_limit import limiter
from billboards.services.calendar_generator import CalendarGenerator
from billboards.utils.auth import create_access_token

COMPANY_ID = 1
OTHER_COMPANY_ID = 2
CLIENT_ID = 10


@pytest.fixture
async def engine(tmp_path):
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await init_db(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def calendar_2025(db):
    await CalendarGenerator(db).generate_calendar(2025)


@pytest.fixture
def make_billboard(db):
    async def _make(code="P-001", company_id=COMPANY_ID, available=True) -> Billboard:
        billboard = Billboard(code=code, company_id=company_id, available=available, street_name="Av. Paulista")
        db.add(billboard)
        await db.commit()
        return billboard

    return _make


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {create_access_token(1, COMPANY_ID)}"}


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {create_access_token(2, COMPANY_ID, is_admin=True)}"}


@pytest.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    limiter.enabled = False
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
