"""Persistence unit: the mapping registry and session factory for one data source.

Entity classes belong to the application under test; they are registered
with ``PersistenceUnit.entity`` so the unit's naming options apply to them.
"""
from __future__ import annotations

import logging
from typing import TypeVar

from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import registry

from src.persistence.naming import NamingOptions

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


class PersistenceUnit:
    """Named configuration group mapping entity classes to the database schema.

    Units are compared and hashed by identity; they key transaction bindings.
    """

    def __init__(
        self,
        name: str,
        data_source: AsyncEngine,
        options: NamingOptions | None = None,
    ) -> None:
        self.name = name
        self.data_source = data_source
        self.options = options or NamingOptions()
        self.registry = registry(
            metadata=MetaData(naming_convention=dict(self.options.implicit.convention))
        )
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            data_source,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=True,
        )

    @property
    def metadata(self) -> MetaData:
        return self.registry.metadata

    def entity(self, cls: type[_T]) -> type[_T]:
        """Map ``cls`` declaratively; usable as a class decorator.

        A class without ``__tablename__`` gets the name chosen by the unit's
        implicit and physical naming strategies.
        """
        if "__tablename__" not in cls.__dict__ and "__table__" not in cls.__dict__:
            cls.__tablename__ = self.options.table_name(cls)  # type: ignore[attr-defined]
        mapped = self.registry.mapped(cls)
        table_name = mapped.__table__.name  # type: ignore[attr-defined]
        logger.debug("Mapped entity %s to table %s", cls.__name__, table_name)
        return mapped

    async def dispose(self) -> None:
        """Release every connection held by the data source."""
        await self.data_source.dispose()

    def __repr__(self) -> str:
        return f"PersistenceUnit(name={self.name!r}, url={self.data_source.url!r})"


def create_persistence_unit(
    name: str,
    data_source: AsyncEngine,
    options: NamingOptions | None = None,
) -> PersistenceUnit:
    """Create a persistence unit over ``data_source``.

    Args:
        name: Persistence unit name, used in logs and reprs.
        data_source: Engine every session of the unit connects through.
        options: Physical and implicit naming strategies. Defaults to the
            standard physical strategy with component-path implicit naming.

    Returns:
        The new, empty persistence unit.
    """
    unit = PersistenceUnit(name, data_source, options)
    logger.info(
        "Created persistence unit %s on %s",
        name,
        data_source.url.render_as_string(hide_password=True),
    )
    return unit


async def create_schema(unit: PersistenceUnit) -> None:
    """Create every table mapped in ``unit`` that does not exist yet."""
    async with unit.data_source.begin() as conn:
        await conn.run_sync(unit.metadata.create_all)
    logger.info(
        "Created schema for persistence unit %s (%d tables)",
        unit.name,
        len(unit.metadata.tables),
    )


async def drop_schema(unit: PersistenceUnit) -> None:
    """Drop every table mapped in ``unit``."""
    async with unit.data_source.begin() as conn:
        await conn.run_sync(unit.metadata.drop_all)
    logger.info("Dropped schema for persistence unit %s", unit.name)
