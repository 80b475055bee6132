"""Docker container inspection for the Postgres fixture.

The data source only needs two facts about a running container: the host it
is reachable on and the host port mapped to its first exposed port.
"""
from __future__ import annotations

import logging
from typing import Any, Protocol

from testcontainers.postgres import PostgresContainer

from src.persistence.settings import (
    DATABASE_NAME,
    DATABASE_PASSWORD,
    DATABASE_USER,
    POSTGRES_IMAGE,
    POSTGRES_PORT,
)

logger = logging.getLogger(__name__)


class Instance(Protocol):
    """Where a database server is reachable."""

    @property
    def host(self) -> str: ...

    def find_first_port(self) -> int: ...


class StaticInstance:
    """Inspection data for a server that is not managed by Testcontainers."""

    def __init__(self, host: str, port: int) -> None:
        self._host = host
        self._port = port

    @property
    def host(self) -> str:
        return self._host

    def find_first_port(self) -> int:
        return self._port

    def __repr__(self) -> str:
        return f"StaticInstance(host={self._host!r}, port={self._port!r})"


class ContainerInstance:
    """Inspection view over a started Testcontainers container."""

    def __init__(self, container: Any) -> None:
        self._container = container

    @property
    def container(self) -> Any:
        return self._container

    @property
    def host(self) -> str:
        """Host IP the container's mapped ports are reachable on."""
        return self._container.get_container_host_ip()

    def find_first_port(self) -> int:
        """Return the host port mapped to the first exposed container port.

        Raises:
            LookupError: The container exposes no ports.
        """
        exposed = list(self._container.ports)
        if not exposed:
            raise LookupError("Container exposes no ports")
        return int(self._container.get_exposed_port(exposed[0]))

    def __repr__(self) -> str:
        return f"ContainerInstance(container={self._container!r})"


def postgres_container(image: str | None = None) -> PostgresContainer:
    """Build (but do not start) a PostgreSQL container with the fixture credentials.

    Args:
        image: Docker image to run. Defaults to ``FIXTURE_POSTGRES_IMAGE``.

    Returns:
        An un-started container; use it as a context manager.
    """
    image = image or POSTGRES_IMAGE
    logger.info("Configuring PostgreSQL container from image %s", image)
    return PostgresContainer(
        image,
        port=POSTGRES_PORT,
        username=DATABASE_USER,
        password=DATABASE_PASSWORD,
        dbname=DATABASE_NAME,
        driver=None,
    )
