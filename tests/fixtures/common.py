"""
Common test fixtures shared by all modules.

Provides factory functions and doubles for core registry structures:
- IdentityFields / IdentityRecord
- FakeClock: strictly increasing deterministic clock
- FlakyLedger: LocalLedger whose publish fails in transport on demand

These are the foundational building blocks used by higher-level fixtures.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Sequence

from adapters.ledger import LocalLedger
from adapters.prover import ReferenceProver
from adapters.snapshot_store import InMemorySnapshotStore
from core.crypto.commitments import identity_commitment
from core.schemas.errors import TransportError
from core.schemas.identity import IdentityFields, IdentityRecord, RecordStatus
from core.store.record_store import LocalRecordStore
from orchestrator.engine import ReconciliationEngine


# Small depth keeps rebuilds fast; capacity 16
TEST_TREE_DEPTH = 4


# =============================================================================
# Identity Factories
# =============================================================================

def make_identity_fields(
    national_id: str = "3201012345670001",
    name: str = "Alice Wijaya",
    birth_date: str = "19900101",
    key: str = "alice-secret",
) -> IdentityFields:
    """Create IdentityFields for testing."""
    return IdentityFields(
        national_id=national_id,
        name=name,
        birth_date=birth_date,
        key=key,
    )


def alice_fields() -> IdentityFields:
    return make_identity_fields()


def bob_fields() -> IdentityFields:
    return make_identity_fields(
        national_id="3201012345670002",
        name="Bob Santoso",
        birth_date="19851231",
        key="bob-secret",
    )


def carol_fields() -> IdentityFields:
    return make_identity_fields(
        national_id="3201012345670003",
        name="Carol Halim",
        birth_date="20000229",
        key="carol-secret",
    )


def make_record(
    subject_id: str = "alice",
    fields: Optional[IdentityFields] = None,
    salt: int = 12345,
    status: RecordStatus = RecordStatus.PENDING,
    submitted_at: Optional[datetime] = None,
    approved_at: Optional[datetime] = None,
    leaf_index: Optional[int] = None,
) -> IdentityRecord:
    """Create an IdentityRecord for testing."""
    fields = fields or make_identity_fields()
    return IdentityRecord(
        subject_id=subject_id,
        identity_commitment=identity_commitment(fields),
        salt=salt,
        status=status,
        submitted_at=submitted_at or datetime(2026, 1, 1, tzinfo=timezone.utc),
        approved_at=approved_at,
        leaf_index=leaf_index,
    )


# =============================================================================
# Test Doubles
# =============================================================================

class FakeClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.current = start or datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


class FlakyLedger(LocalLedger):
    """
    LocalLedger whose publish can fail in transport.

    fail_publishes: number of upcoming publish calls that raise
        TransportError
    apply_before_failing: when True the failing publish still applies
        the root first, like a timeout after the ledger committed
    fail_reads: number of upcoming current_root calls that raise
    """

    def __init__(self, path=None) -> None:
        super().__init__(path)
        self.fail_publishes = 0
        self.apply_before_failing = False
        self.fail_reads = 0
        self.publish_calls = 0
        self.snapshot_reads = 0

    def publish_root(
        self,
        root: int,
        approved: Sequence[int],
        snapshot_id: Optional[str] = None,
        revoked: Sequence[int] = (),
    ) -> str:
        self.publish_calls += 1
        if self.fail_publishes > 0:
            self.fail_publishes -= 1
            if self.apply_before_failing:
                super().publish_root(root, approved, snapshot_id, revoked)
            raise TransportError("connection reset during publish", endpoint="flaky")
        return super().publish_root(root, approved, snapshot_id, revoked)

    def current_root(self) -> int:
        if self.fail_reads > 0:
            self.fail_reads -= 1
            raise TransportError("connection reset during read", endpoint="flaky")
        return super().current_root()

    def current_snapshot_id(self) -> Optional[str]:
        self.snapshot_reads += 1
        return super().current_snapshot_id()

    def force_root(self, root: int, snapshot_id: Optional[str] = None) -> None:
        """Move the ledger root without any registry involvement."""
        with self._lock:
            self._root = root
            self._snapshot_id = snapshot_id


def make_engine(
    data_dir: Any,
    *,
    ledger: Optional[LocalLedger] = None,
    snapshot_store: Optional[InMemorySnapshotStore] = None,
    clock: Optional[FakeClock] = None,
    depth: int = TEST_TREE_DEPTH,
    publish_retries: int = 2,
) -> ReconciliationEngine:
    """Create an engine over a temp directory with in-process collaborators."""
    return ReconciliationEngine(
        store=LocalRecordStore(data_dir),
        ledger=ledger if ledger is not None else LocalLedger(),
        snapshot_store=snapshot_store if snapshot_store is not None else InMemorySnapshotStore(),
        prover=ReferenceProver(),
        depth=depth,
        publish_retries=publish_retries,
        clock=clock or FakeClock(),
    )
