"""
Module 01 - Schemas & Canonicalization
File: snapshot.py

Purpose: Accumulator snapshot schemas.

- CachedAccumulator: the local cache (root + ordered leaves).
- Snapshot: the durable, content-addressed recovery image (accumulator
  plus every record). Immutable once stored; a new snapshot gets a new
  content id.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .identity import (
    APPROVED_STATUSES,
    FieldElement,
    IdentityRecord,
    utc_now,
)
from .versioning import SNAPSHOT_FORMAT_VERSION


# Every level is materialized, so 2^D must stay buildable in memory.
MIN_TREE_DEPTH: int = 1
MAX_TREE_DEPTH: int = 24


class CachedAccumulator(BaseModel):
    """Locally cached accumulator state."""

    model_config = ConfigDict(extra="forbid")

    depth: int = Field(..., ge=MIN_TREE_DEPTH, le=MAX_TREE_DEPTH)
    root: FieldElement
    leaves: list[FieldElement] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=utc_now)

    @model_validator(mode="after")
    def check_capacity(self) -> "CachedAccumulator":
        if len(self.leaves) > 2**self.depth:
            raise ValueError(
                f"{len(self.leaves)} leaves exceed capacity of depth {self.depth}"
            )
        return self


class SnapshotMetadata(BaseModel):
    """Informational counts; not used for integrity checks."""

    model_config = ConfigDict(extra="forbid")

    total_records: int = 0
    member_records: int = 0
    approved_records: int = 0


class Snapshot(BaseModel):
    """Full recovery image of the registry."""

    model_config = ConfigDict(extra="forbid")

    format_version: str = Field(default=SNAPSHOT_FORMAT_VERSION)
    created_at: datetime = Field(default_factory=utc_now)
    depth: int = Field(..., ge=MIN_TREE_DEPTH, le=MAX_TREE_DEPTH)
    root: FieldElement
    leaves: list[FieldElement] = Field(default_factory=list)
    records: dict[str, IdentityRecord] = Field(default_factory=dict)
    metadata: SnapshotMetadata = Field(default_factory=SnapshotMetadata)

    @model_validator(mode="after")
    def check_consistency(self) -> "Snapshot":
        if len(self.leaves) > 2**self.depth:
            raise ValueError(
                f"{len(self.leaves)} leaves exceed capacity of depth {self.depth}"
            )
        for key, record in self.records.items():
            if key != record.subject_id:
                raise ValueError(
                    f"Record key '{key}' does not match subject_id '{record.subject_id}'"
                )
        return self

    @classmethod
    def create(
        cls,
        *,
        depth: int,
        root: int,
        leaves: list[int],
        records: dict[str, IdentityRecord],
    ) -> "Snapshot":
        """Build a snapshot with metadata counts filled in."""
        values = list(records.values())
        return cls(
            depth=depth,
            root=root,
            leaves=list(leaves),
            records={k: v.model_copy(deep=True) for k, v in records.items()},
            metadata=SnapshotMetadata(
                total_records=len(values),
                member_records=sum(1 for r in values if r.is_tree_member),
                approved_records=sum(1 for r in values if r.status in APPROVED_STATUSES),
            ),
        )

    def to_cached(self) -> CachedAccumulator:
        return CachedAccumulator(
            depth=self.depth,
            root=self.root,
            leaves=list(self.leaves),
        )
