"""Naming strategies applied by the persistence-unit factory.

Two independent options decide what ends up in the schema:

- Physical naming turns a logical name into the identifier written to the
  database. The standard strategy leaves it untouched.
- Implicit naming derives names the mapping does not state: an entity's
  table name and every constraint/index name. The component-path strategy
  builds constraint names from the full path of each participating column.
"""
from __future__ import annotations

import hashlib
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

PhysicalNaming = Callable[[str], str]


def _check_path(constraint: Any, table: Any) -> str:
    """Column path of a check constraint followed by a digest of its SQL.

    The digest keeps two checks on the same columns apart; a textual check
    that references no column objects is named by the digest alone.
    """
    sqltext = str(constraint.sqltext)
    digest = hashlib.md5(sqltext.encode("utf-8"), usedforsecurity=False).hexdigest()[:8]
    return "_".join([column.name for column in constraint.columns] + [digest])


# Keys and tokens are those understood by sqlalchemy.MetaData(naming_convention=...).
# Explicitly named constraints keep their names.
COMPONENT_PATH_CONVENTION: dict[str, Any] = {
    "check_path": _check_path,
    "ix": "ix_%(column_0_N_label)s",
    "uq": "uq_%(table_name)s_%(column_0_N_name)s",
    "ck": "ck_%(table_name)s_%(check_path)s",
    "fk": "fk_%(table_name)s_%(column_0_N_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def standard_physical_name(logical_name: str) -> str:
    """Use the logical name verbatim."""
    return logical_name


@dataclass(frozen=True)
class ComponentPathNamingStrategy:
    """Entity class name as table name, full column paths in constraint names."""

    convention: Mapping[str, Any] = field(
        default_factory=lambda: dict(COMPONENT_PATH_CONVENTION)
    )

    def table_name(self, entity: type) -> str:
        return entity.__name__


@dataclass(frozen=True)
class NamingOptions:
    """The two naming-strategy options of a persistence unit."""

    physical: PhysicalNaming = standard_physical_name
    implicit: ComponentPathNamingStrategy = field(default_factory=ComponentPathNamingStrategy)

    def table_name(self, entity: type) -> str:
        """Physical table name for an entity that does not declare one."""
        return self.physical(self.implicit.table_name(entity))
