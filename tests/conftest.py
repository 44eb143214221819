"""Shared fixtures: an in-memory SQLite database per test plus a seeded warehouse."""

import os

# Must be set before anything imports core.config / db.database.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("JWT_SECRET", "test-secret")

import uuid
from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import db.models  # noqa: F401
from core.auth import current_active_user
from db.database import Base, get_async_session
from db.models import User
from main import app
from services import catalog


@pytest.fixture()
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture()
def session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture()
async def session(session_maker):
    async with session_maker() as s:
        yield s


async def _make_user(session_maker, role: str) -> User:
    async with session_maker() as s:
        user = User(
            id=uuid.uuid4(),
            email=f"{role.lower()}-{uuid.uuid4().hex[:6]}@example.com",
            hashed_password="not-a-real-hash",
            is_active=True,
            is_superuser=False,
            is_verified=True,
            role=role,
        )
        s.add(user)
        await s.commit()
        return user


@pytest.fixture()
async def user(session_maker):
    return await _make_user(session_maker, "ADMIN")


@pytest.fixture()
async def wh(session):
    """One warehouse with receiving, storage and picking locations and three items.

    Only ids are exposed: ORM instances expire on rollback and would lazy-load.
    """
    warehouse = await catalog.create_warehouse(session, code="WH1", name="Main")
    other = await catalog.create_warehouse(session, code="WH2", name="Overflow")
    rcv = await catalog.create_location(session, warehouse_id=warehouse.id, code="RCV-01", type="RECEIVING")
    a1 = await catalog.create_location(session, warehouse_id=warehouse.id, code="A-01", type="STORAGE")
    a2 = await catalog.create_location(session, warehouse_id=warehouse.id, code="A-02", type="STORAGE")
    pick = await catalog.create_location(session, warehouse_id=warehouse.id, code="P-01", type="PICKING")
    foreign = await catalog.create_location(session, warehouse_id=other.id, code="X-01", type="STORAGE")
    box = await catalog.create_item(session, sku="SKU-BOX", name="Box")
    tape = await catalog.create_item(session, sku="SKU-TAPE", name="Tape", unit="ROLL")
    pallet = await catalog.create_item(session, sku="SKU-PAL", name="Pallet", unit="PAL")
    return SimpleNamespace(
        id=warehouse.id,
        other_id=other.id,
        rcv=rcv.id,
        a1=a1.id,
        a2=a2.id,
        pick=pick.id,
        foreign=foreign.id,
        box=box.id,
        tape=tape.id,
        pallet=pallet.id,
    )


def _client_for(session_maker, acting_user=None):
    async def _session_override():
        async with session_maker() as s:
            yield s

    app.dependency_overrides[get_async_session] = _session_override
    if acting_user is not None:
        app.dependency_overrides[current_active_user] = lambda: acting_user
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.fixture()
async def client(session_maker, user):
    async with _client_for(session_maker, user) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
async def viewer_client(session_maker):
    viewer = await _make_user(session_maker, "VIEWER")
    async with _client_for(session_maker, viewer) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
async def anon_client(session_maker):
    """Client that authenticates through the real JWT login route."""
    async with _client_for(session_maker) as c:
        yield c
    app.dependency_overrides.clear()
