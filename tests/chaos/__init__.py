"""Failure-propagation tests for the persistence wiring.

These tests deliberately introduce failures to verify that errors from the
database, driver and connection layer reach the caller unmodified and leave
no transaction binding behind.

All tests require FIXTURE_USE_TESTCONTAINERS=true and Docker socket access.
"""
