"""Root conftest: PostgreSQL persistence wiring using Testcontainers.

Provides a session-scoped PostgreSQL container and the persistence objects
built on it, so integration tests run against a genuine database rather than
mocks. Each fixture mirrors one provider of PostgresTestConfig.
"""
from __future__ import annotations

from collections.abc import AsyncGenerator, Generator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine
from testcontainers.postgres import PostgresContainer

from src.persistence.config import PostgresTestConfig
from src.persistence.container import ContainerInstance
from src.persistence.container import postgres_container as build_postgres_container
from src.persistence.settings import use_testcontainers
from src.persistence.transaction import TransactionManager
from src.persistence.unit import PersistenceUnit, create_schema, drop_schema
from tests.entities import Entities, register_entities

pytest_plugins = ["pytester"]


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers to suppress PytestUnknownMarkWarning."""
    config.addinivalue_line("markers", "unit: Runs without Docker")
    config.addinivalue_line("markers", "integration: Requires a real PostgreSQL container")
    config.addinivalue_line("markers", "chaos: Failure-propagation tests against real infrastructure")


def pytest_collection_modifyitems(
    config: pytest.Config,
    items: list[pytest.Item],
) -> None:
    """Skip tests that require Docker unless Testcontainers are enabled."""
    skip_no_containers = pytest.mark.skip(
        reason="Testcontainers disabled — set FIXTURE_USE_TESTCONTAINERS=true"
    )

    if use_testcontainers():
        return

    for item in items:
        if any(mark in item.keywords for mark in ("integration", "chaos")):
            item.add_marker(skip_no_containers)


# ---------------------------------------------------------------------------
# Container fixtures (session-scoped — start once, share across all tests)
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """Start a real PostgreSQL container for the entire test session.

    Image defaults to postgres:16-alpine (override with FIXTURE_POSTGRES_IMAGE);
    database, user and password are the fixture defaults.
    """
    with build_postgres_container() as postgres:
        yield postgres


@pytest.fixture(scope="session")
def container_instance(postgres_container: PostgresContainer) -> ContainerInstance:
    """Inspection view (host, first port) of the running container."""
    return ContainerInstance(postgres_container)


# ---------------------------------------------------------------------------
# Persistence wiring (one fixture per provider)
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def postgres_config() -> PostgresTestConfig:
    return PostgresTestConfig()


@pytest.fixture(scope="session")
def data_source(
    postgres_config: PostgresTestConfig,
    container_instance: ContainerInstance,
) -> AsyncEngine:
    """Data source connected to the test container."""
    return postgres_config.data_source_provider(container_instance)


@pytest.fixture(scope="session")
def persistence_unit(
    postgres_config: PostgresTestConfig,
    data_source: AsyncEngine,
) -> PersistenceUnit:
    """Persistence unit over the container data source."""
    return postgres_config.persistence_unit_provider(data_source)


@pytest.fixture(scope="session")
def entities(persistence_unit: PersistenceUnit) -> Entities:
    """Test entity classes mapped in the session persistence unit."""
    return register_entities(persistence_unit)


@pytest.fixture(scope="session")
def transaction_manager(
    postgres_config: PostgresTestConfig,
    persistence_unit: PersistenceUnit,
) -> TransactionManager:
    return postgres_config.transaction_manager_provider(persistence_unit)


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def schema(
    persistence_unit: PersistenceUnit,
    entities: Entities,
) -> AsyncGenerator[PersistenceUnit, None]:
    """Create the mapped tables once per session and drop them afterwards."""
    await create_schema(persistence_unit)
    yield persistence_unit
    await drop_schema(persistence_unit)
    await persistence_unit.dispose()
