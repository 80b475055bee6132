"""Shared fixtures for tests that run without Docker.

The offline data source points at a closed local port. Nothing here opens a
connection: sessions connect lazily, on the first statement, and the
data source does not pool connections, so there is nothing to dispose.
"""
from __future__ import annotations

import pytest

from src.persistence.config import PostgresTestConfig
from src.persistence.container import StaticInstance
from src.persistence.transaction import TransactionManager
from src.persistence.unit import PersistenceUnit

OFFLINE_HOST = "127.0.0.1"
OFFLINE_PORT = 1


@pytest.fixture
def offline_instance() -> StaticInstance:
    return StaticInstance(OFFLINE_HOST, OFFLINE_PORT)


@pytest.fixture
def offline_unit(offline_instance: StaticInstance) -> PersistenceUnit:
    """Persistence unit whose data source is never reachable."""
    config = PostgresTestConfig(echo=False)
    return config.persistence_unit_provider(config.data_source_provider(offline_instance))


@pytest.fixture
def offline_manager(offline_unit: PersistenceUnit) -> TransactionManager:
    return TransactionManager(offline_unit)
