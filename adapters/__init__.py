"""
Remote collaborators of the reconciliation engine.

- ledger: authoritative root + approved set
- snapshot_store: content-addressed recovery blobs
- prover: opaque proof generation
"""

from .ledger import EMPTY_ROOT, HttpLedger, LedgerAdapter, LocalLedger
from .prover import (
    HttpProver,
    Prover,
    ProverInput,
    ProverResult,
    ReferenceProver,
    verify_reference_proof,
)
from .snapshot_store import (
    DirectorySnapshotStore,
    GatewaySnapshotStore,
    InMemorySnapshotStore,
    SnapshotStore,
    content_id_for,
)

__all__ = [
    # Ledger
    "EMPTY_ROOT",
    "LedgerAdapter",
    "LocalLedger",
    "HttpLedger",
    # Prover
    "Prover",
    "ProverInput",
    "ProverResult",
    "ReferenceProver",
    "HttpProver",
    "verify_reference_proof",
    # Snapshot store
    "SnapshotStore",
    "InMemorySnapshotStore",
    "DirectorySnapshotStore",
    "GatewaySnapshotStore",
    "content_id_for",
]
