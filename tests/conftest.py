# --- keep this shim at the very top ---
import os
import sys

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
# --------------------------------------

import pytest
import pytest_asyncio
import httpx

from contextlib import asynccontextmanager
from mongomock_motor import AsyncMongoMockClient

import hunterx.main as app_main  # patch names bound inside main.py

GON = {
    "name": "Gon Freecss",
    "age": 12,
    "height": 1.55,
    "weight": 45,
    "eyeColor": "Green",
    "hairColor": "Black",
    "status": "Active",
}


@pytest.fixture
def mock_collection():
    """A fresh in-memory characters collection per test."""
    return AsyncMongoMockClient()["hunterx"]["characters"]


@pytest.fixture(autouse=True)
def memory_store_and_overrides(monkeypatch, mock_collection):
    """
    Serve every request from an in-memory Mongo mock.
    - Route the collection dependency to the mock.
    - Replace the app lifespan so TestClient startup never dials a real server.
    """
    app_main.app.dependency_overrides[app_main.get_collection] = (
        lambda: mock_collection
    )

    @asynccontextmanager
    async def test_lifespan(_app):
        yield

    monkeypatch.setattr(
        app_main.app.router, "lifespan_context", test_lifespan, raising=False
    )

    yield

    app_main.app.dependency_overrides.pop(app_main.get_collection, None)


@pytest_asyncio.fixture
async def test_app():
    from hunterx.main import app as _app

    yield _app


@pytest_asyncio.fixture
async def test_client(test_app):
    transport = httpx.ASGITransport(app=test_app)
    async with httpx.AsyncClient(
        transport=transport, base_url="http://testserver"
    ) as c:
        yield c
