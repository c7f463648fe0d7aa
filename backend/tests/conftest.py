# tests/conftest.py — Shared test fixtures
import os

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

# Use SQLite for tests
TEST_DB_URL = "sqlite+aiosqlite:///./test.db"
os.environ["DATABASE_URL"] = TEST_DB_URL
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-unit-tests-only-min-32-chars"
os.environ["ENVIRONMENT"] = "test"

from models import Base, User
from auth import AuthService, CurrentUser
from broadcaster import EventBroadcaster
from database import get_db_session
from main import app


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    engine = create_async_engine(TEST_DB_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine):
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(db_engine):
    """HTTP test client with overridden DB dependency"""
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


async def _make_user(db_session, email: str, display_name: str) -> User:
    user = User(
        email=email,
        display_name=display_name,
        password_hash=AuthService.hash_password("TestPassword123!"),
        is_active=True,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def owner_user(db_session):
    """Creates workspaces and boards in most tests"""
    return await _make_user(db_session, "owner@taskboard.dev", "Olivia Owner")


@pytest_asyncio.fixture
async def member_user(db_session):
    return await _make_user(db_session, "member@taskboard.dev", "Max Member")


@pytest_asyncio.fixture
async def outsider_user(db_session):
    """Never invited to anything"""
    return await _make_user(db_session, "outsider@taskboard.dev", "Oscar Outsider")


@pytest.fixture
def events():
    """Isolated broadcaster so tests can watch published events"""
    return EventBroadcaster()


class FakeSocket:
    """Stands in for a WebSocket; records every JSON frame sent to it"""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    async def send_json(self, message):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(message)

    def events(self):
        return [m["type"] for m in self.sent]


def as_actor(user: User) -> CurrentUser:
    return CurrentUser(id=user.id, email=user.email, display_name=user.display_name, is_active=True)


def get_auth_headers(user: User) -> dict:
    """Generate auth headers for a user"""
    token_data = {"sub": user.id, "email": user.email}
    token = AuthService.create_access_token(token_data)
    return {"Authorization": f"Bearer {token}"}


# ============================================================
# HTTP HELPERS
# ============================================================

async def make_workspace(client: AsyncClient, user: User, name: str = "Team Space") -> dict:
    resp = await client.post("/api/v1/workspaces", json={"name": name}, headers=get_auth_headers(user))
    assert resp.status_code == 201, resp.text
    return resp.json()


async def make_board(client: AsyncClient, user: User, workspace_id: str, title: str = "Sprint") -> dict:
    resp = await client.post(
        "/api/v1/boards",
        json={"title": title, "workspace_id": workspace_id},
        headers=get_auth_headers(user),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


async def make_list(client: AsyncClient, user: User, board_id: str, title: str = "To Do") -> dict:
    resp = await client.post(
        "/api/v1/lists",
        json={"title": title, "board_id": board_id},
        headers=get_auth_headers(user),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


async def make_card(client: AsyncClient, user: User, board_id: str, list_id: str,
                    title: str = "Task") -> dict:
    resp = await client.post(
        "/api/v1/cards",
        json={"title": title, "list_id": list_id, "board_id": board_id},
        headers=get_auth_headers(user),
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


async def invite(client: AsyncClient, owner: User, board_id: str, user: User) -> dict:
    resp = await client.post(
        f"/api/v1/boards/{board_id}/invite",
        json={"user_id": user.id},
        headers=get_auth_headers(owner),
    )
    assert resp.status_code == 200, resp.text
    return resp.json()


@pytest_asyncio.fixture
async def board_setup(client, owner_user):
    """Workspace + board + one list, owned by owner_user"""
    ws = await make_workspace(client, owner_user)
    board = await make_board(client, owner_user, ws["id"])
    lst = await make_list(client, owner_user, board["id"])
    return {"workspace": ws, "board": board, "list": lst}
