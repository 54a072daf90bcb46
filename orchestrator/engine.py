"""
Module 05A - Reconciliation Engine

Orchestrates the identity registry across three independently failing
stores: the local record store, the ledger authority and the
content-addressed snapshot store.

Record lifecycle:
    submit  -> pending
    approve -> approved   (full rebuild + snapshot + publish)
    verify  -> verified   (reconcile, prove, submit proof)
    revoke  -> revoked    (status tag flip + full rebuild + publish)

Rebuild sequence (always under the exclusive rebuild lock):
    1. Enumerate tree members in stable (approved_at, subject_id) order
    2. Build the accumulator, assign every member its leaf index
    3. Upload the snapshot (content id)
    4. Persist records + cached accumulator locally
    5. Publish {root, approved, blocked, snapshot id} to the ledger

Verify reconciliation is a bounded two-step procedure: compare the
cached root with the ledger root, reload from the ledger's snapshot at
most once, then either proceed or fail with RootMismatchError.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

from adapters.ledger import LedgerAdapter
from adapters.prover import Prover, ProverInput
from adapters.snapshot_store import SnapshotStore
from core.crypto.commitments import generate_salt, identity_commitment, leaf_commitment
from core.merkle.accumulator import DEFAULT_TREE_DEPTH, Accumulator, check_depth
from core.schemas.errors import (
    DuplicateSubmissionError,
    IdentityMismatchError,
    InvalidStateError,
    NotFoundError,
    RootMismatchError,
    SnapshotFormatError,
    TransportError,
)
from core.schemas.identity import (
    APPROVED_STATUSES,
    IdentityFields,
    IdentityRecord,
    RecordAction,
    RecordStateMachine,
    RecordStatus,
    StatusTag,
    utc_now,
)
from core.schemas.snapshot import CachedAccumulator, Snapshot
from core.store.record_store import LocalRecordStore
from orchestrator.locking import RebuildLock
from orchestrator.snapshots import (
    deserialize_snapshot,
    serialize_snapshot,
    snapshot_to_accumulator,
)


logger = logging.getLogger(__name__)

DEFAULT_CIRCUIT_ID = "identity_merkle"
DEFAULT_PUBLISH_RETRIES = 2


# =============================================================================
# Results
# =============================================================================

@dataclass
class PublishResult:
    """Outcome of one rebuild-and-publish sequence."""
    root: int
    snapshot_id: str
    leaf_count: int
    tx_ref: Optional[str] = None
    # True when the publish call failed in transport but a ledger read
    # showed the root had been applied anyway
    confirmed_by_read: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "root": str(self.root),
            "snapshot_id": self.snapshot_id,
            "leaf_count": self.leaf_count,
            "tx_ref": self.tx_ref,
            "confirmed_by_read": self.confirmed_by_read,
        }


@dataclass
class RegistryUpdate:
    """Result of approve / revoke."""
    record: IdentityRecord
    publish: PublishResult


@dataclass
class VerificationOutcome:
    """Result of a successful verify."""
    record: IdentityRecord
    tx_ref: str
    root: int
    leaf_index: int
    reloaded: bool = False
    public_signals: list[int] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "subject_id": self.record.subject_id,
            "status": self.record.status.value,
            "tx_ref": self.tx_ref,
            "root": str(self.root),
            "leaf_index": self.leaf_index,
            "reloaded": self.reloaded,
        }


@dataclass
class _VerifyPlan:
    record: IdentityRecord
    ledger_root: int
    leaf_index: int
    prover_input: ProverInput


# =============================================================================
# Engine
# =============================================================================

def tree_member_order(record: IdentityRecord) -> tuple[datetime, str]:
    """Stable enumeration key; later approvals never move earlier members."""
    return (record.approved_at or record.submitted_at, record.subject_id)


def enumerate_members(records: dict[str, IdentityRecord] | list[IdentityRecord]) -> list[IdentityRecord]:
    """Tree members in leaf order."""
    values = records.values() if isinstance(records, dict) else records
    return sorted((r for r in values if r.is_tree_member), key=tree_member_order)


class ReconciliationEngine:
    """
    Registry state machine plus cross-store reconciliation.

    Synchronous and thread-safe: every rebuild, submit, reload and
    final status write holds the exclusive side of the rebuild lock;
    verify prepares its witness under the shared side.
    """

    def __init__(
        self,
        store: LocalRecordStore,
        ledger: LedgerAdapter,
        snapshot_store: SnapshotStore,
        prover: Prover,
        *,
        depth: int = DEFAULT_TREE_DEPTH,
        circuit_id: str = DEFAULT_CIRCUIT_ID,
        publish_retries: int = DEFAULT_PUBLISH_RETRIES,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.ledger = ledger
        self.snapshot_store = snapshot_store
        self.prover = prover
        self.depth = check_depth(depth)
        self.circuit_id = circuit_id
        self.publish_retries = max(0, publish_retries)
        self.clock = clock
        self.lock = RebuildLock()
        self._cache: Optional[CachedAccumulator] = store.load_snapshot()

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit(self, subject_id: str, fields: IdentityFields) -> IdentityRecord:
        """
        Create a pending record with a fresh salt.

        Re-submitting the same fields under the same subject id returns
        the existing record unchanged.

        Raises:
            EncodingError: If the fields cannot be encoded
            DuplicateSubmissionError: If an active record under another
                subject id holds the same identity commitment
            InvalidStateError: If the subject id already holds a
                different identity
        """
        commitment = identity_commitment(fields)

        with self.lock.exclusive():
            for other in self.store.find_by_commitment(commitment):
                if other.is_active and other.subject_id != subject_id:
                    raise DuplicateSubmissionError(
                        "Identity already registered under another subject",
                        subject_id=subject_id,
                        existing_subject_id=other.subject_id,
                    )

            existing = self.store.get(subject_id)
            if existing is not None:
                if existing.identity_commitment == commitment:
                    logger.info(f"Re-submission of '{subject_id}' ignored")
                    return existing
                raise InvalidStateError(
                    f"Subject '{subject_id}' already holds a different identity",
                    subject_id=subject_id,
                    current=existing.status.value,
                    action="submit",
                )

            record = IdentityRecord(
                subject_id=subject_id,
                identity_commitment=commitment,
                salt=generate_salt(),
                submitted_at=self.clock(),
            )
            self.store.put(record)

        logger.info(f"Submitted '{subject_id}' (pending)")
        return record

    # ------------------------------------------------------------------
    # Approve / revoke
    # ------------------------------------------------------------------

    def approve(self, subject_id: str) -> RegistryUpdate:
        """Approve a pending record and publish the rebuilt accumulator."""
        with self.lock.exclusive():
            records = self._load_records()
            record = self._require(records, subject_id)
            RecordStateMachine.apply(record, RecordAction.APPROVE)
            record.approved_at = self.clock()
            publish = self._rebuild_and_publish_locked(records)

        logger.info(
            f"Approved '{subject_id}' at leaf {record.leaf_index}; root {publish.root}"
        )
        return RegistryUpdate(record=record, publish=publish)

    def revoke(self, subject_id: str, reason: Optional[str] = None) -> RegistryUpdate:
        """
        Revoke an approved or verified record.

        The leaf stays in place with its status tag flipped, so every
        proof issued against an earlier root stops reconstructing.
        """
        with self.lock.exclusive():
            records = self._load_records()
            record = self._require(records, subject_id)
            RecordStateMachine.apply(record, RecordAction.REVOKE)
            record.revoked_at = self.clock()
            record.revocation_reason = reason
            publish = self._rebuild_and_publish_locked(records)

        logger.info(f"Revoked '{subject_id}'; root {publish.root}")
        return RegistryUpdate(record=record, publish=publish)

    def rebuild_and_publish(self) -> PublishResult:
        """Manual full rebuild + snapshot + publish of the current record set."""
        with self.lock.exclusive():
            return self._rebuild_and_publish_locked(self._load_records())

    def _rebuild_and_publish_locked(self, records: dict[str, IdentityRecord]) -> PublishResult:
        members = enumerate_members(records)
        for record in records.values():
            if not record.is_tree_member:
                record.leaf_index = None
        for index, record in enumerate(members):
            record.leaf_index = index

        leaves = [
            leaf_commitment(r.identity_commitment, r.salt, r.status_tag) for r in members
        ]
        accumulator = Accumulator.build(leaves, self.depth)
        root = accumulator.root()

        snapshot = Snapshot.create(
            depth=self.depth, root=root, leaves=leaves, records=records
        )
        snapshot_id = self.snapshot_store.put(serialize_snapshot(snapshot))

        self.store.put_many(records.values())
        self._set_cache(snapshot.to_cached())

        approved = [r.identity_commitment for r in members if r.status in APPROVED_STATUSES]
        approved_set = set(approved)
        revoked = [
            r.identity_commitment for r in members
            if r.status == RecordStatus.REVOKED and r.identity_commitment not in approved_set
        ]

        tx_ref, confirmed_by_read = self._publish(root, approved, snapshot_id, revoked)
        return PublishResult(
            root=root,
            snapshot_id=snapshot_id,
            leaf_count=len(leaves),
            tx_ref=tx_ref,
            confirmed_by_read=confirmed_by_read,
        )

    def _publish(
        self,
        root: int,
        approved: list[int],
        snapshot_id: str,
        revoked: list[int],
    ) -> tuple[Optional[str], bool]:
        """
        Publish with bounded retry.

        A transport failure leaves the outcome unknown, so the ledger
        root is read before deciding to retry. LedgerRejectedError is
        never retried.
        """
        attempt = 0
        while True:
            try:
                return self.ledger.publish_root(root, approved, snapshot_id, revoked), False
            except TransportError as e:
                logger.warning(f"Publish of root {root} failed in transport: {e.message}")
                try:
                    current = self.ledger.current_root()
                except TransportError as read_error:
                    logger.warning(f"Ledger root read failed: {read_error.message}")
                    current = None
                if current == root:
                    logger.info(f"Ledger already holds root {root}; publish applied")
                    return None, True
                if attempt >= self.publish_retries:
                    logger.error(
                        f"Publish of root {root} not applied after {attempt + 1} attempt(s); "
                        "local state is ahead of the ledger"
                    )
                    raise
                attempt += 1

    # ------------------------------------------------------------------
    # Verify
    # ------------------------------------------------------------------

    def verify(self, subject_id: str, fields: IdentityFields) -> VerificationOutcome:
        """
        Prove membership for a subject and submit the proof to the ledger.

        At most one snapshot reload is attempted. Any failure before
        proof submission leaves ledger and record state untouched.

        Raises:
            NotFoundError, InvalidStateError, IdentityMismatchError: caller errors
            RootMismatchError: cache and ledger still disagree after one reload
            LedgerRejectedError: the ledger refused the proof
            TransportError, ProverError: remote failures
        """
        commitment = identity_commitment(fields)

        with self.lock.shared():
            self._check_verifiable(subject_id, commitment)
            ledger_root = self.ledger.current_root()
            in_sync = self._cache is not None and self._cache.root == ledger_root

        reloaded = False
        if not in_sync:
            cached_root = self._cache.root if self._cache else None
            logger.info(
                f"Cached root {cached_root} differs from ledger root {ledger_root}; "
                "reloading from snapshot"
            )
            with self.lock.exclusive():
                self._reload_locked(expected_root=ledger_root)
            reloaded = True

        with self.lock.shared():
            plan = self._prepare_proof(subject_id, commitment, fields, ledger_root)

        result = self.prover.prove(self.circuit_id, plan.prover_input)
        if result.root != plan.ledger_root:
            raise RootMismatchError(
                "Prover attested to a root other than the ledger root",
                expected_root=plan.ledger_root,
                actual_root=result.root,
            )

        tx_ref = self.ledger.submit_proof(result.proof, result.public_signals, commitment)

        with self.lock.exclusive():
            record = self._require_stored(subject_id)
            RecordStateMachine.apply(record, RecordAction.VERIFY)
            record.leaf_index = plan.leaf_index
            record.verified_at = self.clock()
            record.verification_tx = tx_ref
            self.store.put(record)

        logger.info(f"Verified '{subject_id}' at leaf {plan.leaf_index} (tx {tx_ref})")
        return VerificationOutcome(
            record=record,
            tx_ref=tx_ref,
            root=plan.ledger_root,
            leaf_index=plan.leaf_index,
            reloaded=reloaded,
            public_signals=list(result.public_signals),
        )

    def _check_verifiable(self, subject_id: str, commitment: int) -> IdentityRecord:
        record = self._require_stored(subject_id)
        RecordStateMachine.validate(record, RecordAction.VERIFY)
        if record.identity_commitment != commitment:
            raise IdentityMismatchError(subject_id)
        return record

    def _prepare_proof(
        self,
        subject_id: str,
        commitment: int,
        fields: IdentityFields,
        ledger_root: int,
    ) -> _VerifyPlan:
        """Recompute the leaf index and inclusion path; caller holds the shared lock."""
        record = self._check_verifiable(subject_id, commitment)

        cache = self._cache
        if cache is None or cache.root != ledger_root:
            raise RootMismatchError(
                "Cached accumulator does not match the ledger root read for this verification",
                expected_root=ledger_root,
                actual_root=cache.root if cache else None,
            )

        members = enumerate_members(self.store.all_records())
        leaf_index = next(
            (i for i, r in enumerate(members) if r.subject_id == subject_id), None
        )
        if leaf_index is None:
            raise RootMismatchError(
                f"'{subject_id}' is not a member of the reconciled accumulator",
                expected_root=ledger_root,
            )
        if record.leaf_index != leaf_index:
            logger.info(
                f"Leaf index of '{subject_id}' recomputed: {record.leaf_index} -> {leaf_index}"
            )

        accumulator = Accumulator.build(cache.leaves, cache.depth)
        if accumulator.root() != ledger_root:
            raise RootMismatchError(
                "Rebuilt accumulator root differs from the ledger root",
                expected_root=ledger_root,
                actual_root=accumulator.root(),
            )

        expected_leaf = leaf_commitment(commitment, record.salt, StatusTag.ACTIVE)
        if leaf_index >= accumulator.leaf_count or accumulator.leaf(leaf_index) != expected_leaf:
            raise RootMismatchError(
                f"Accumulator leaf {leaf_index} does not match the record of '{subject_id}'",
                expected_root=ledger_root,
                details={"leaf_index": leaf_index},
            )

        path = accumulator.proof(leaf_index)
        return _VerifyPlan(
            record=record,
            ledger_root=ledger_root,
            leaf_index=leaf_index,
            prover_input=ProverInput(
                identity_fields=fields,
                salt=record.salt,
                path_siblings=list(path.siblings),
                path_directions=list(path.directions),
                claimed_root=path.root,
            ),
        )

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def reload_from_snapshot(self, snapshot_id: Optional[str] = None) -> Snapshot:
        """
        Replace the local cache and records with a stored snapshot.

        Without an explicit id the ledger's current snapshot is used and
        its root must equal the ledger root.
        """
        with self.lock.exclusive():
            expected_root = self.ledger.current_root() if snapshot_id is None else None
            return self._reload_locked(snapshot_id=snapshot_id, expected_root=expected_root)

    def _reload_locked(
        self,
        snapshot_id: Optional[str] = None,
        expected_root: Optional[int] = None,
    ) -> Snapshot:
        sid = snapshot_id or self.ledger.current_snapshot_id()
        if not sid:
            raise RootMismatchError(
                "Ledger records no snapshot to reconcile from",
                expected_root=expected_root,
                actual_root=self._cache.root if self._cache else None,
            )

        snapshot = deserialize_snapshot(self.snapshot_store.get(sid))
        if snapshot.depth != self.depth:
            raise SnapshotFormatError(
                f"Snapshot depth {snapshot.depth} differs from registry depth {self.depth}",
                details={"snapshot_id": sid, "depth": snapshot.depth},
            )
        if expected_root is not None and snapshot.root != expected_root:
            raise RootMismatchError(
                "Reloaded snapshot root does not match the ledger root",
                expected_root=expected_root,
                actual_root=snapshot.root,
                details={"snapshot_id": sid},
            )

        merged = self._merge_records(snapshot.records, self._load_records())
        self.store.replace_all(merged.values())
        self._set_cache(snapshot.to_cached())
        logger.info(
            f"Reloaded snapshot {sid}: root {snapshot.root}, "
            f"{len(snapshot.leaves)} leaves, {len(snapshot.records)} records"
        )
        return snapshot

    def _merge_records(
        self,
        snapshot_records: dict[str, IdentityRecord],
        local_records: dict[str, IdentityRecord],
    ) -> dict[str, IdentityRecord]:
        """
        Snapshot records win. A local verification of the same leaf is
        kept, since verify never publishes a new snapshot. Local-only
        records survive as pending.
        """
        merged = {sid: r.model_copy(deep=True) for sid, r in snapshot_records.items()}

        for sid, local in local_records.items():
            remote = merged.get(sid)
            if remote is not None:
                if (
                    local.status == RecordStatus.VERIFIED
                    and remote.status == RecordStatus.APPROVED
                    and local.identity_commitment == remote.identity_commitment
                    and local.salt == remote.salt
                ):
                    remote.status = RecordStatus.VERIFIED
                    remote.verified_at = local.verified_at
                    remote.verification_tx = local.verification_tx
                continue

            if local.status != RecordStatus.PENDING:
                logger.warning(
                    f"'{sid}' is {local.status.value} locally but absent from the "
                    "snapshot; resetting to pending"
                )
                local = local.model_copy(update={
                    "status": RecordStatus.PENDING,
                    "leaf_index": None,
                    "approved_at": None,
                    "verified_at": None,
                    "verification_tx": None,
                    "revoked_at": None,
                    "revocation_reason": None,
                })
            merged[sid] = local
        return merged

    def save_snapshot(self) -> str:
        """Upload the current cache + records as a new snapshot; returns its id."""
        with self.lock.shared():
            records = self._load_records()
            cache = self._cache
            if cache is None:
                members = enumerate_members(records)
                leaves = [
                    leaf_commitment(r.identity_commitment, r.salt, r.status_tag)
                    for r in members
                ]
                depth = self.depth
                root = Accumulator.build(leaves, depth).root()
            else:
                leaves, depth, root = list(cache.leaves), cache.depth, cache.root
            snapshot = Snapshot.create(depth=depth, root=root, leaves=leaves, records=records)
            snapshot_id = self.snapshot_store.put(serialize_snapshot(snapshot))
        logger.info(f"Saved snapshot {snapshot_id}")
        return snapshot_id

    def load_snapshot_accumulator(self, snapshot_id: str) -> Accumulator:
        """Fetch a snapshot and rebuild its accumulator without applying it."""
        return snapshot_to_accumulator(deserialize_snapshot(self.snapshot_store.get(snapshot_id)))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_record(self, subject_id: str) -> IdentityRecord:
        return self._require_stored(subject_id)

    def has_submitted(self, subject_id: str) -> bool:
        return self.store.get(subject_id) is not None

    def is_approved(self, subject_id: str) -> bool:
        """Approved locally, or the ledger lists the subject's commitment."""
        record = self.store.get(subject_id)
        if record is None:
            return False
        if record.status in APPROVED_STATUSES:
            return True
        if record.status == RecordStatus.REVOKED:
            return False
        return self.ledger.is_approved(record.identity_commitment)

    def is_verified(self, subject_id: str) -> bool:
        record = self.store.get(subject_id)
        return record is not None and record.status == RecordStatus.VERIFIED

    def check_identity_approval(self, fields: IdentityFields) -> dict[str, Any]:
        """Ledger lookup by identity fields alone."""
        commitment = identity_commitment(fields)
        return {
            "identity_commitment": str(commitment),
            "approved": self.ledger.is_approved(commitment),
        }

    def pending_records(self) -> list[IdentityRecord]:
        return sorted(
            self.store.list_by_status(RecordStatus.PENDING),
            key=lambda r: (r.submitted_at, r.subject_id),
        )

    def current_root(self) -> Optional[int]:
        """Root of the locally cached accumulator."""
        return self._cache.root if self._cache else None

    def is_valid_root(self, root: int) -> bool:
        """Ledger root-history lookup; stale proofs may still cite an older root."""
        return self.ledger.is_valid_root(root)

    def registry_info(self) -> dict[str, Any]:
        stats = self.store.stats()
        cache = self._cache
        info: dict[str, Any] = {
            "depth": cache.depth if cache else self.depth,
            "capacity": 2 ** (cache.depth if cache else self.depth),
            "leaf_count": len(cache.leaves) if cache else 0,
            "local_root": str(cache.root) if cache else None,
            "records": stats["by_status"],
            "total_records": stats["total"],
            "circuit_id": self.circuit_id,
        }
        try:
            ledger_root = self.ledger.current_root()
            info["ledger_root"] = str(ledger_root)
            info["snapshot_id"] = self.ledger.current_snapshot_id()
            info["in_sync"] = cache is not None and cache.root == ledger_root
        except TransportError as e:
            logger.warning(f"Ledger unavailable for registry info: {e.message}")
            info["ledger_root"] = None
            info["snapshot_id"] = None
            info["in_sync"] = None
        return info

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Delete every local record and the cache. The ledger is untouched."""
        with self.lock.exclusive():
            self.store.clear()
            self._cache = None
        logger.warning("Local registry state reset")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load_records(self) -> dict[str, IdentityRecord]:
        return {r.subject_id: r for r in self.store.all_records()}

    def _require(self, records: dict[str, IdentityRecord], subject_id: str) -> IdentityRecord:
        record = records.get(subject_id)
        if record is None:
            raise NotFoundError(subject_id)
        return record

    def _require_stored(self, subject_id: str) -> IdentityRecord:
        record = self.store.get(subject_id)
        if record is None:
            raise NotFoundError(subject_id)
        return record

    def _set_cache(self, cache: CachedAccumulator) -> None:
        self.store.save_snapshot(cache)
        self._cache = cache


__all__ = [
    "DEFAULT_CIRCUIT_ID",
    "DEFAULT_PUBLISH_RETRIES",
    "PublishResult",
    "RegistryUpdate",
    "VerificationOutcome",
    "ReconciliationEngine",
    "enumerate_members",
    "tree_member_order",
]
