import os

# Must be set before agrotrace.core.config is imported
os.environ["DATABASE_URL"] = "sqlite://:memory:"

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from agrotrace.core.db import init_db, close_db

TEST_DB_URL = "sqlite://:memory:"


@pytest_asyncio.fixture
async def db():
    """Fresh in-memory database per test."""
    await init_db(TEST_DB_URL)
    yield
    await close_db()


@pytest.fixture
def client():
    """App client with the lifespan running, so routes hit a real (in-memory) database."""
    from agrotrace.main import app

    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
