"""
Fixtures for tests against real PostgreSQL and MinIO containers.

Every test in this package is marked `integration` and skipped when no
Docker daemon is reachable.
"""

import asyncpg
import docker
import pytest
import pytest_asyncio
from docker.errors import DockerException

from silent_money.db import create_schema
from silent_money.dependencies import _init_connection
from silent_money.models import Base
from tests.testcontainers.containers import get_minio_container, get_postgres_container, stop_all


def docker_available() -> bool:
    try:
        docker.from_env().ping()
    except DockerException:
        return False
    return True


def pytest_collection_modifyitems(config, items):
    available = docker_available()
    skip = pytest.mark.skip(reason="Docker daemon not available")
    for item in items:
        if "tests/integration" not in str(item.fspath).replace("\\", "/"):
            continue
        item.add_marker(pytest.mark.integration)
        if not available:
            item.add_marker(skip)


@pytest.fixture(scope="session")
def postgres():
    container = get_postgres_container()
    create_schema(container.get_sqlalchemy_url())
    yield container
    stop_all()


@pytest.fixture(scope="session")
def minio():
    return get_minio_container()


@pytest_asyncio.fixture
async def pool(postgres):
    """Pool for one test; every table is emptied afterwards."""
    db_pool = await asyncpg.create_pool(postgres.get_dsn(), min_size=1, max_size=4, init=_init_connection)
    yield db_pool
    async with db_pool.acquire() as conn:
        await conn.execute(f"TRUNCATE {', '.join(Base.metadata.tables)} CASCADE")
    await db_pool.close()
