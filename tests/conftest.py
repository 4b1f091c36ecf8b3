"""
Shared fixtures: an in-memory Motor database, seeded parties, and an
HTTP client bound to the app with the database dependency overridden.
"""

import os

os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017/linkmarket_test")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ["ENV"] = "test"

from datetime import datetime

import httpx
import pytest
from bson import ObjectId
from mongomock_motor import AsyncMongoMockClient

from database import get_db
from utils.jwt import create_access_token
from utils.order_timeline import timeline_entry


@pytest.fixture
def db():
    return AsyncMongoMockClient()["linkmarket_test"]


async def _make_user(db, role: str, email: str) -> dict:
    user = {"_id": ObjectId(), "email": email, "role": role, "cart": []}
    await db.users.insert_one(user)
    user["token"] = create_access_token(str(user["_id"]), role)
    return user


@pytest.fixture
async def publisher(db):
    return await _make_user(db, "publisher", "pub@example.com")


@pytest.fixture
async def advertiser(db):
    return await _make_user(db, "advertiser", "adv@example.com")


@pytest.fixture
async def admin(db):
    return await _make_user(db, "super admin", "root@example.com")


@pytest.fixture
async def outsider(db):
    return await _make_user(db, "publisher", "other@example.com")


@pytest.fixture
async def website(db, publisher):
    listing = {
        "_id": ObjectId(),
        "publisher_id": publisher["_id"],
        "domain": "https://www.techblog.io",
        "url": "https://www.techblog.io",
        "pricing": {"guestPost": 50.0, "linkInsertion": 30.0, "writingGuestPost": 80.0},
    }
    await db.websites.insert_one(listing)
    return listing


@pytest.fixture
async def post(db, advertiser):
    doc = {
        "_id": ObjectId(),
        "advertiser_id": advertiser["_id"],
        "title": "Ten tips for faster builds",
        "content": "<p>Body</p>",
        "post_type": "regular",
        "status": "draft",
        "created_at": datetime.utcnow(),
    }
    await db.posts.insert_one(doc)
    return doc


def auth(user: dict) -> dict:
    return {"Authorization": f"Bearer {user['token']}"}


def order_doc(
    *,
    advertiser_id,
    publisher_id,
    website_id,
    type: str = "guestPost",
    status: str = "requested",
    price: float = 50.0,
    created_at: datetime | None = None,
    **fields,
) -> dict:
    created_at = created_at or datetime.utcnow()
    return {
        "advertiser_id": advertiser_id,
        "publisher_id": publisher_id,
        "website_id": website_id,
        "type": type,
        "post_id": None,
        "link_insertion_id": None,
        "price": price,
        "status": status,
        "timeline": [timeline_entry(status=status, actor_id=advertiser_id, note="Order placed", at=created_at)],
        "rejection_reason": None,
        "version": 0,
        "created_at": created_at,
        "updated_at": created_at,
        "completed_at": None,
        **fields,
    }


@pytest.fixture
def make_order(db, advertiser, publisher, website):
    async def factory(**fields) -> dict:
        doc = order_doc(
            advertiser_id=advertiser["_id"],
            publisher_id=publisher["_id"],
            website_id=website["_id"],
            **fields,
        )
        await db.orders.insert_one(doc)
        return doc

    return factory


@pytest.fixture
def app(db):
    from main import app

    app.dependency_overrides[get_db] = lambda: db
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
