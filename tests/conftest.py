"""
Shared fixtures.

The environment is pointed at throwaway SQLite and upload/report
directories before anything from ``tableserve`` is imported, because the
settings and the default engine are created at import time.
"""

import os
import tempfile
from pathlib import Path

_TMP = Path(tempfile.mkdtemp(prefix="tableserve-tests-"))

os.environ["ENV_MODE"] = "development"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP / 'default.db'}"
os.environ["UPLOAD_DIRECTORY"] = str(_TMP / "uploads")
os.environ["DATA_DIRECTORY"] = str(_TMP / "data")
os.environ["MOCK_PAYMENT_FAILURE_RATE"] = "0"
os.environ["MOCK_PAYMENT_MAX_LATENCY"] = "0"
os.environ["PUBLIC_BASE_URL"] = "http://localhost:5173"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

import tableserve.models  # noqa: F401
from tableserve.database import Base, build_engine, get_db
from tableserve.main import app


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def engine(tmp_path):
    test_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_maker):
    async def override_get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http
    app.dependency_overrides.clear()


# =============================================================================
# API HELPERS
# =============================================================================

async def register_user(client: AsyncClient, name: str, email: str) -> dict:
    response = await client.post("/api/users", json={"name": name, "email": email})
    assert response.status_code == 201, response.text
    body = response.json()
    return {"id": body["user"]["id"], "email": email, "token": body["api_token"]}


async def add_member(
    client: AsyncClient,
    seeded: dict,
    name: str,
    email: str,
    role: str,
    staff_type: str = None,
    venue_ids: list = None,
) -> dict:
    """Register a user and add them to the seeded organization."""
    user = await register_user(client, name, email)
    body = {"email": email, "role": role, "venue_ids": venue_ids or []}
    if staff_type:
        body["staff_type"] = staff_type
    response = await client.post(
        f"/api/organizations/{seeded['org_id']}/members",
        json=body,
        headers=auth(seeded["token"]),
    )
    assert response.status_code == 201, response.text
    user["member_id"] = response.json()["id"]
    return user


@pytest_asyncio.fixture
async def seeded(client):
    """
    An owner with one organization, venue, table and menu.

    Prices are chosen so the default 5% tax never needs rounding.
    """
    owner = await register_user(client, "Olivia Owner", "owner@example.com")
    headers = auth(owner["token"])

    response = await client.post("/api/organizations", json={"name": "Spice Route"}, headers=headers)
    assert response.status_code == 201, response.text
    org = response.json()
    base = f"/api/organizations/{org['id']}"

    venue = (await client.post(f"{base}/venues", json={"name": "Downtown"}, headers=headers)).json()
    table = (
        await client.post(
            f"{base}/venues/{venue['id']}/tables",
            json={"name": "T1", "capacity": 4},
            headers=headers,
        )
    ).json()

    menu = (await client.post(f"{base}/menus", json={"name": "Dinner"}, headers=headers)).json()
    category = (
        await client.post(
            f"{base}/menus/{menu['id']}/categories",
            json={"name": "Mains", "display_order": 1},
            headers=headers,
        )
    ).json()
    curry = (
        await client.post(
            f"{base}/categories/{category['id']}/items",
            json={"name": "Paneer Curry", "price": 10.0, "modifiers": [{"name": "Extra rice", "price": 2.0}]},
            headers=headers,
        )
    ).json()
    naan = (
        await client.post(
            f"{base}/categories/{category['id']}/items",
            json={"name": "Garlic Naan", "price": 4.0},
            headers=headers,
        )
    ).json()

    return {
        "token": owner["token"],
        "user_id": owner["id"],
        "org_id": org["id"],
        "slug": org["slug"],
        "base": base,
        "venue_id": venue["id"],
        "table_id": table["id"],
        "menu_id": menu["id"],
        "category_id": category["id"],
        "item_id": curry["id"],
        "modifier_id": curry["modifiers"][0]["id"],
        "naan_id": naan["id"],
    }
