"""Connectivity probe for the Postgres fixture wiring.

Runs one query through data source, persistence unit, transaction manager and
session handle, exactly as the test fixtures wire them.

Usage:
    # Start a throwaway container and probe it:
    python -m src.persistence.probe

    # Probe a server that is already running:
    python -m src.persistence.probe --host localhost --port 5432
"""
from __future__ import annotations

import argparse
import asyncio
import logging

from sqlalchemy import text

from src.persistence.config import PostgresTestConfig
from src.persistence.container import (
    ContainerInstance,
    Instance,
    StaticInstance,
    postgres_container,
)
from src.persistence.settings import POSTGRES_IMAGE

logger = logging.getLogger(__name__)


async def probe(instance: Instance, config: PostgresTestConfig | None = None) -> str:
    """Return the server version reported through the full fixture wiring.

    Args:
        instance: Where the server is reachable.
        config: Provider configuration. Defaults to ``PostgresTestConfig()``.

    Returns:
        The ``SELECT version()`` result.
    """
    config = config or PostgresTestConfig()
    data_source = config.data_source_provider(instance)
    unit = config.persistence_unit_provider(data_source)
    manager = config.transaction_manager_provider(unit)
    try:
        async with manager.transaction(rollback_only=True):
            session = config.session_provider(unit)
            result = await session.execute(text("SELECT version()"))
            version: str = result.scalar_one()
    finally:
        await unit.dispose()
    logger.info("Probe succeeded: %s", version)
    return version


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def _parse_args() -> argparse.Namespace:
    """Parse CLI arguments for the probe."""
    parser = argparse.ArgumentParser(
        description="Probe PostgreSQL through the integration-test persistence wiring"
    )
    parser.add_argument("--host", default="localhost", help="Server host (with --port)")
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Server port. Omit to start a container instead.",
    )
    parser.add_argument(
        "--image",
        default=POSTGRES_IMAGE,
        help="Docker image to start when --port is omitted",
    )
    return parser.parse_args()


async def _main() -> None:
    """Async main for CLI entry point."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    args = _parse_args()

    if args.port is not None:
        version = await probe(StaticInstance(args.host, args.port))
    else:
        with postgres_container(args.image) as container:
            version = await probe(ContainerInstance(container))
    print(f"Connected: {version}")


if __name__ == "__main__":
    asyncio.run(_main())
