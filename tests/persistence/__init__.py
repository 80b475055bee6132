"""Unit tests for the persistence wiring.

These run without Docker: the data source points at a closed port and no
test issues a statement through it.
"""
