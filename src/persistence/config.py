"""Postgres database configuration for integration tests.

NOTE: this module wires test infrastructure only. Production code must never
import it; the fixtures in ``conftest.py`` are the only intended callers.

Provider graph (each provider consumes the previous one's product):

    ContainerInstance -> data source -> persistence unit -> transaction manager
                                        persistence unit -> session handle
"""
from __future__ import annotations

import logging

from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool

from src.persistence.container import Instance
from src.persistence.naming import (
    ComponentPathNamingStrategy,
    NamingOptions,
    standard_physical_name,
)
from src.persistence.settings import (
    DATABASE_NAME,
    DATABASE_PASSWORD,
    DATABASE_USER,
    DRIVER_NAME,
    PERSISTENCE_UNIT_NAME,
    SQL_ECHO,
)
from src.persistence.transaction import TransactionManager, current_session
from src.persistence.unit import PersistenceUnit, create_persistence_unit

logger = logging.getLogger(__name__)


class PostgresTestConfig:
    """Provides the data source, persistence unit, session handle and
    transaction manager for a PostgreSQL database running in a container."""

    def __init__(self, echo: bool = SQL_ECHO) -> None:
        self.echo = echo

    def data_source_url(self, host: str, port: int) -> URL:
        """Connection URL for the default ``postgres`` image database."""
        return URL.create(
            DRIVER_NAME,
            username=DATABASE_USER,
            password=DATABASE_PASSWORD,
            host=host,
            port=port,
            database=DATABASE_NAME,
        )

    def data_source_provider(self, instance: Instance) -> AsyncEngine:
        """Provide a data source for the database running inside the container.

        Connections are not pooled: every checkout opens a new connection, so
        the engine is safe to share across event loops.

        Args:
            instance: Inspection view of the started container.

        Returns:
            An engine connecting to the container's host and first exposed port.
        """
        url = self.data_source_url(instance.host, instance.find_first_port())
        logger.info("Providing data source for %s", url.render_as_string(hide_password=True))
        return create_async_engine(url, echo=self.echo, poolclass=NullPool)

    def persistence_unit_provider(self, data_source: AsyncEngine) -> PersistenceUnit:
        """Provide a persistence unit over the data source.

        Names are resolved with the standard physical strategy and the
        component-path implicit strategy.
        """
        options = NamingOptions(
            physical=standard_physical_name,
            implicit=ComponentPathNamingStrategy(),
        )
        return create_persistence_unit(PERSISTENCE_UNIT_NAME, data_source, options)

    def session_provider(self, unit: PersistenceUnit) -> AsyncSession:
        """Provide the session of the current transaction.

        Called anew for every injection point; never cache the result.

        Raises:
            TransactionNotActiveError: No transaction is active for ``unit``.
        """
        return current_session(unit)

    def transaction_manager_provider(self, unit: PersistenceUnit) -> TransactionManager:
        """Provide a transaction manager for the persistence unit."""
        return TransactionManager(unit)
