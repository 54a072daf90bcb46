"""
Module 05 - Reconciliation Engine (In-Process Runtime Wiring)

Public API:
- ReconciliationEngine: submit / approve / verify / revoke plus
  rebuild, reload and snapshot maintenance
- RebuildLock: shared/exclusive lock guarding the accumulator
- serialize_snapshot / deserialize_snapshot: snapshot codec
- build_engine: wire an engine from RuntimeConfig
"""

from orchestrator.engine import (
    DEFAULT_CIRCUIT_ID,
    DEFAULT_PUBLISH_RETRIES,
    PublishResult,
    ReconciliationEngine,
    RegistryUpdate,
    VerificationOutcome,
    enumerate_members,
    tree_member_order,
)
from orchestrator.factory import (
    build_engine,
    build_ledger,
    build_prover,
    build_snapshot_store,
)
from orchestrator.locking import RebuildLock
from orchestrator.snapshots import (
    deserialize_snapshot,
    serialize_snapshot,
    snapshot_to_accumulator,
)


__all__ = [
    # Engine
    "ReconciliationEngine",
    "PublishResult",
    "RegistryUpdate",
    "VerificationOutcome",
    "DEFAULT_CIRCUIT_ID",
    "DEFAULT_PUBLISH_RETRIES",
    "enumerate_members",
    "tree_member_order",
    # Locking
    "RebuildLock",
    # Snapshot codec
    "serialize_snapshot",
    "deserialize_snapshot",
    "snapshot_to_accumulator",
    # Factory
    "build_engine",
    "build_ledger",
    "build_prover",
    "build_snapshot_store",
]
