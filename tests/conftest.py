"""
Shared fixtures for the API and service tests.

The Mongo database is replaced by an in-memory mongomock-motor database and
every seeded user gets an authenticated TestClient.
"""
import asyncio
import hashlib
from datetime import datetime

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from courier.database.connection import mongo_db_dependency
from courier.main import app
from courier.utils.security import create_access_token


USERNAMES = ("alice", "bob", "carol")


def make_user(username: str, **extra) -> dict:
    email = f"{username}@mailbox.org"
    user = {
        "_id": ObjectId(),
        "username": username,
        "displayName": username.title(),
        "email": email,
        "emailHash": hashlib.md5(email.encode()).hexdigest(),
        "avatarSource": "gravatar",
        "avatarUploaded": False,
        "locale": "en",
        "updated": datetime(2024, 1, 1),
        "password": "not-a-mini-profile-field",
    }
    user.update(extra)
    return user


@pytest.fixture
def run():
    """Run a coroutine to completion from a synchronous test."""
    return asyncio.run


@pytest.fixture
def db():
    return AsyncMongoMockClient()["courier_test"]


@pytest.fixture
def users(db, run):
    """Seed alice, bob and carol; returns username -> id."""
    docs = [make_user(name) for name in USERNAMES]
    run(db["users"].insert_many(docs))
    return {doc["username"]: str(doc["_id"]) for doc in docs}


@pytest.fixture
def api(db):
    app.dependency_overrides[mongo_db_dependency] = lambda: db
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def anonymous(api):
    return TestClient(api)


@pytest.fixture
def clients(api, users):
    """One client per seeded user, authenticated with a Bearer token."""
    return {
        name: TestClient(api, headers={"Authorization": f"Bearer {create_access_token(user_id)}"})
        for name, user_id in users.items()
    }
