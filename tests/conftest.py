import os
import sys
import tempfile
from datetime import timedelta

import pytest

os.environ["MONGODB_TRANSACTIONS"] = "false"
os.environ["STATUS_REFRESH_SECONDS"] = "0"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="netwin-uploads-")
os.environ["SMTP_SERVER"] = ""

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from core.config import ACCESS_TOKEN_EXPIRE_MINUTES
from main import app
from models.user import UserProfile
from services.auth import create_access_token, get_password_hash
from services.database import initialize_db_connection, create_indexes, get_db

PLAYER_ID = "player-1"
OTHER_ID = "player-2"
ADMIN_ID = "admin-1"
PASSWORD = "testpw123"

# 1x1 transparent PNG
PNG_DATA_URL = ("data:image/png;base64,"
                "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII=")

# The hash is slow to compute, so every seeded user shares one
PASSWORD_HASH = get_password_hash(PASSWORD)


def make_token(user_id: str):
    return create_access_token(data={"sub": user_id}, expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))


def auth(token: str):
    return {"Authorization": f"Bearer {token}"}


async def seed_users():
    users = [
        UserProfile(_id=PLAYER_ID, email="player1@netwin.gg", username="player1", password=PASSWORD_HASH,
                    game_id="5123456789", country="India", currency="INR", wallet_balance=500),
        UserProfile(_id=OTHER_ID, email="player2@netwin.gg", username="player2", password=PASSWORD_HASH,
                    country="Nigeria", currency="NGN", wallet_balance=50),
        UserProfile(_id=ADMIN_ID, email="admin@netwin.gg", username="admin", password=PASSWORD_HASH,
                    role="admin"),
    ]
    for user in users:
        await get_db().users.insert_one(user.model_dump(by_alias=True))


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def client():
    initialize_db_connection(AsyncMongoMockClient())
    await create_indexes()
    await seed_users()

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
def db(client):
    return get_db()


@pytest.fixture(scope="session")
def token():
    return make_token(PLAYER_ID)


@pytest.fixture(scope="session")
def other_token():
    return make_token(OTHER_ID)


@pytest.fixture(scope="session")
def admin_token():
    return make_token(ADMIN_ID)
