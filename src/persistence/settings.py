"""Connection constants and environment-driven options for the Postgres fixture.

The credentials are the defaults baked into the official ``postgres`` image
configuration used by the test container; they are not secrets.
"""
from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Fixed database coordinates
# ---------------------------------------------------------------------------

DATABASE_NAME: str = "postgres"
DATABASE_USER: str = "postgres"
DATABASE_PASSWORD: str = "mysecretpassword"

POSTGRES_PORT: int = 5432
DRIVER_NAME: str = "postgresql+asyncpg"

PERSISTENCE_UNIT_NAME: str = "integration_test"

# ---------------------------------------------------------------------------
# Environment overrides
# ---------------------------------------------------------------------------

POSTGRES_IMAGE: str = os.getenv("FIXTURE_POSTGRES_IMAGE", "postgres:16-alpine")

USE_TESTCONTAINERS_ENV: str = "FIXTURE_USE_TESTCONTAINERS"


def env_flag(name: str, default: bool = False) -> bool:
    """Read a boolean switch; only "true" (any case, surrounding blanks ignored) enables it."""
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() == "true"


def use_testcontainers() -> bool:
    """Whether Docker-backed tests may start containers, read at call time."""
    return env_flag(USE_TESTCONTAINERS_ENV)


SQL_ECHO: bool = env_flag("FIXTURE_SQL_ECHO")
