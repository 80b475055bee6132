"""PostgreSQL persistence fixture for integration tests.

Wires, against a Docker-hosted PostgreSQL started by Testcontainers:
- a data source (SQLAlchemy async engine)
- a persistence unit (mapping registry + session factory)
- a transaction-bound session handle
- a transaction manager

Usage:
    # From a conftest.py fixture:
    from src.persistence.config import PostgresTestConfig
    config = PostgresTestConfig()
    engine = config.data_source_provider(instance)

    # From shell:
    python -m src.persistence.probe
"""
