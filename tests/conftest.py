"""
Pytest configuration.

Environment is set up before any application import because
``config.settings`` and ``database.session`` are built at import time.
"""

import asyncio
import os
import tempfile
from concurrent.futures import ThreadPoolExecutor

_TEST_DIR = tempfile.mkdtemp(prefix="auth-api-tests-")

os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TEST_DIR}/test.db")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DEBUG", "false")

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from database.session import async_session_factory, drop_models, init_models

PASSWORD = "s3cret-password"


async def _reset_database() -> None:
    await drop_models()
    await init_models()


@pytest.fixture(autouse=True)
def fresh_database():
    """Every test starts from empty tables."""
    # Own thread, so the test's event loop is left untouched.
    with ThreadPoolExecutor(max_workers=1) as pool:
        pool.submit(asyncio.run, _reset_database()).result()
    yield


@pytest.fixture
def client():
    from main import create_app

    with TestClient(create_app()) as test_client:
        yield test_client


@pytest_asyncio.fixture
async def session():
    async with async_session_factory() as db:
        yield db


@pytest.fixture
def register_payload():
    return {
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "password": PASSWORD,
        "password_confirmation": PASSWORD,
    }


@pytest.fixture
def registered(client, register_payload):
    """Register the default user over HTTP and return the response body."""
    res = client.post("/register", json=register_payload)
    assert res.status_code == 201, res.text
    return res.json()
