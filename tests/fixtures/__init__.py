"""
Test fixtures package for identity registry tests.

This package provides factory functions and test doubles:
- common.py: identity/record factories, FakeClock, FlakyLedger, make_engine

Usage:
    from fixtures.common import make_engine, alice_fields

    def test_something(tmp_path):
        engine = make_engine(tmp_path)
        engine.submit("alice", alice_fields())
"""

from .common import (
    TEST_TREE_DEPTH,
    FakeClock,
    FlakyLedger,
    alice_fields,
    bob_fields,
    carol_fields,
    make_engine,
    make_identity_fields,
    make_record,
)

__all__ = [
    "TEST_TREE_DEPTH",
    "FakeClock",
    "FlakyLedger",
    "alice_fields",
    "bob_fields",
    "carol_fields",
    "make_engine",
    "make_identity_fields",
    "make_record",
]
