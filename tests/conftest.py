from datetime import datetime, timedelta, timezone

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from nerdtalks.api import create_app
from nerdtalks.config import Settings
from nerdtalks.identity import JWTIdentityVerifier

TEST_SECRET = "test-secret-key"


def make_token(uid, email=None, name=None, secret=TEST_SECRET, expires_in=timedelta(hours=1)):
    payload = {"uid": uid, "exp": datetime.now(timezone.utc) + expires_in}
    if email:
        payload["email"] = email
    if name:
        payload["name"] = name
    return jwt.encode(payload, secret, algorithm="HS256")


def bearer(uid, email=None, **kwargs):
    return {"Authorization": f"Bearer {make_token(uid, email, **kwargs)}"}


class TickingClock:
    """Deterministic clock that advances one second per call"""

    def __init__(self, start=datetime(2024, 1, 1)):
        self.now = start

    def __call__(self):
        self.now = self.now + timedelta(seconds=1)
        return self.now


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def db():
    return AsyncMongoMockClient()["nerdtalks_test"]


@pytest.fixture
def verifier():
    return JWTIdentityVerifier(secret=TEST_SECRET)


@pytest.fixture
def app(db, verifier):
    return create_app(Settings(jwt_secret=TEST_SECRET), db=db, verifier=verifier)


@pytest_asyncio.fixture
async def api_client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client


async def add_user(db, uid, role="user", email=None):
    await db.users.insert_one({
        "uid": uid,
        "name": uid.title(),
        "email": email or f"{uid}@x.com",
        "avatar": "",
        "role": role,
        "badges": ["bronze"],
        "joinedAt": datetime(2024, 1, 1),
    })


@pytest_asyncio.fixture
async def admin_headers(db):
    await add_user(db, "admin1", role="admin")
    return bearer("admin1", "admin1@x.com")


@pytest_asyncio.fixture
async def user_headers(db):
    await add_user(db, "user1", email="a@x.com")
    return bearer("user1", "a@x.com")
