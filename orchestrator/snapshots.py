"""
Module 05C - Snapshot Codec
File: snapshots.py

Purpose: Serialize and deserialize the full recovery image.

Wire format (canonical JSON, UTF-8):
    {
      "format_version": "v1",
      "created_at": "...Z",
      "depth": 16,
      "root": "<decimal>",
      "leaves": ["<decimal>", ...],
      "records": {subject_id: IdentityRecord},
      "metadata": {...}
    }

Every wide value is a decimal string; float literals are rejected on
read. deserialize_snapshot rebuilds the accumulator and refuses a blob
whose stored root does not match its leaves.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from core.merkle.accumulator import Accumulator
from core.schemas.canonical import dumps_canonical, loads_canonical
from core.schemas.errors import (
    CanonicalizationException,
    CapacityExceededError,
    EncodingError,
    SnapshotFormatError,
)
from core.schemas.snapshot import Snapshot
from core.schemas.versioning import is_compatible_snapshot_version


logger = logging.getLogger(__name__)


def serialize_snapshot(snapshot: Snapshot) -> bytes:
    """Encode a snapshot as canonical JSON bytes."""
    return dumps_canonical(snapshot.model_dump(mode="json")).encode("utf-8")


def deserialize_snapshot(blob: bytes) -> Snapshot:
    """
    Decode and validate a snapshot blob.

    Checks:
    1. Valid canonical JSON without float literals
    2. Supported format version
    3. Schema validity (decimal encodings, capacity, record keys)
    4. Rebuilt root equals the stored root

    Raises:
        SnapshotFormatError: If any check fails
    """
    try:
        data = loads_canonical(blob)
    except CanonicalizationException as e:
        raise SnapshotFormatError(f"Snapshot is not valid JSON: {e.message}") from e

    if not isinstance(data, dict):
        raise SnapshotFormatError("Snapshot must be a JSON object")

    version = data.get("format_version")
    if not isinstance(version, str) or not is_compatible_snapshot_version(version):
        raise SnapshotFormatError(
            f"Unsupported snapshot format version: {version!r}",
            details={"format_version": version},
        )

    try:
        snapshot = Snapshot.model_validate(data)
    except ValidationError as e:
        raise SnapshotFormatError(
            f"Snapshot failed validation: {e.error_count()} error(s)",
            details={"errors": [err["msg"] for err in e.errors()][:10]},
        ) from e

    rebuilt = snapshot_to_accumulator(snapshot)
    if rebuilt.root() != snapshot.root:
        raise SnapshotFormatError(
            "Snapshot root does not match its leaves",
            details={"stored_root": str(snapshot.root), "rebuilt_root": str(rebuilt.root())},
        )
    return snapshot


def snapshot_to_accumulator(snapshot: Snapshot) -> Accumulator:
    """Rebuild the accumulator held in a snapshot."""
    try:
        return Accumulator.build(snapshot.leaves, snapshot.depth)
    except (CapacityExceededError, EncodingError, ValueError) as e:
        raise SnapshotFormatError(f"Snapshot leaves cannot be rebuilt: {e}") from e


__all__ = [
    "serialize_snapshot",
    "deserialize_snapshot",
    "snapshot_to_accumulator",
]
