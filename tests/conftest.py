"""
Pytest configuration and shared fixtures for identity registry tests.

This conftest.py:
1. Adds project root to sys.path for imports
2. Provides commonly-used fixtures via pytest's autodiscovery
3. Configures pytest markers and settings
"""

import sys
from pathlib import Path

import pytest

# =============================================================================
# Path Setup - Must happen before any local imports
# =============================================================================

# Get the project root (parent of tests/)
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_TESTS_ROOT = Path(__file__).resolve().parent

# Add both project root and tests root to sys.path
for _path in [str(_PROJECT_ROOT), str(_TESTS_ROOT)]:
    if _path not in sys.path:
        sys.path.insert(0, _path)

# =============================================================================
# Import fixtures using importlib (more robust for pytest loading)
# =============================================================================

import importlib

# Import fixture modules
_common = importlib.import_module("fixtures.common")

# Extract factory functions
make_identity_fields = _common.make_identity_fields
make_record = _common.make_record
make_engine = _common.make_engine
alice_fields = _common.alice_fields
bob_fields = _common.bob_fields
carol_fields = _common.carol_fields
FakeClock = _common.FakeClock
FlakyLedger = _common.FlakyLedger
TEST_TREE_DEPTH = _common.TEST_TREE_DEPTH


# =============================================================================
# Pytest Fixtures (autodiscovered by pytest)
# =============================================================================

@pytest.fixture
def alice():
    """Provide Alice's identity fields."""
    return alice_fields()


@pytest.fixture
def bob():
    """Provide Bob's identity fields."""
    return bob_fields()


@pytest.fixture
def carol():
    """Provide Carol's identity fields."""
    return carol_fields()


@pytest.fixture
def clock():
    """Provide a deterministic, strictly increasing clock."""
    return FakeClock()


@pytest.fixture
def ledger():
    """Provide an in-memory ledger that can fail on demand."""
    return FlakyLedger()


@pytest.fixture
def snapshot_store():
    from adapters.snapshot_store import InMemorySnapshotStore
    return InMemorySnapshotStore()


@pytest.fixture
def record_store(tmp_path):
    from core.store.record_store import LocalRecordStore
    return LocalRecordStore(tmp_path / "data")


@pytest.fixture
def engine(tmp_path, ledger, snapshot_store, clock):
    """Provide a small-depth engine over a temp data dir."""
    return make_engine(
        tmp_path / "data",
        ledger=ledger,
        snapshot_store=snapshot_store,
        clock=clock,
    )


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
