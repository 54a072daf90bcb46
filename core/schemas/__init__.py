"""
Module 01 - Schemas & Canonicalization
File: __init__.py

Purpose: Export the public API for the schemas module.
This is the main entry point for other modules to import schema definitions.
"""

# Version constants
from .versioning import (
    SCHEMA_VERSION,
    SNAPSHOT_FORMAT_VERSION,
    SUPPORTED_SCHEMA_VERSIONS,
    SUPPORTED_SNAPSHOT_FORMAT_VERSIONS,
    UnsupportedSchemaVersionError,
    assert_supported_schema_version,
    is_compatible_snapshot_version,
)

# Canonical serialization API
from .canonical import (
    CANONICAL_JSON_SEPARATORS,
    MAX_NATIVE_INT,
    canonicalize_value,
    decode_decimal,
    dumps_canonical,
    encode_decimal,
    ensure_utc,
    format_datetime_canonical,
    loads_canonical,
)

# Error models and exceptions
from .errors import (
    CanonicalizationException,
    CapacityExceededError,
    DuplicateSubmissionError,
    EncodingError,
    ErrorCodes,
    IdentityMismatchError,
    IndexOutOfRangeError,
    InvalidStateError,
    LedgerRejectedError,
    NotFoundError,
    ProverError,
    RegistryError,
    RegistryException,
    RootMismatchError,
    SnapshotFormatError,
    StoreCorruptedError,
    TransportError,
)

# Identity records
from .identity import (
    APPROVED_STATUSES,
    TREE_MEMBER_STATUSES,
    FieldElement,
    IdentityFields,
    IdentityRecord,
    RecordAction,
    RecordStateMachine,
    RecordStatus,
    StatusTag,
    utc_now,
)

# Snapshots
from .snapshot import (
    CachedAccumulator,
    Snapshot,
    SnapshotMetadata,
)


__all__ = [
    # Versioning
    "SCHEMA_VERSION",
    "SNAPSHOT_FORMAT_VERSION",
    "SUPPORTED_SCHEMA_VERSIONS",
    "SUPPORTED_SNAPSHOT_FORMAT_VERSIONS",
    "UnsupportedSchemaVersionError",
    "assert_supported_schema_version",
    "is_compatible_snapshot_version",
    # Canonical
    "CANONICAL_JSON_SEPARATORS",
    "MAX_NATIVE_INT",
    "canonicalize_value",
    "decode_decimal",
    "dumps_canonical",
    "encode_decimal",
    "ensure_utc",
    "format_datetime_canonical",
    "loads_canonical",
    # Errors
    "CanonicalizationException",
    "CapacityExceededError",
    "DuplicateSubmissionError",
    "EncodingError",
    "ErrorCodes",
    "IdentityMismatchError",
    "IndexOutOfRangeError",
    "InvalidStateError",
    "LedgerRejectedError",
    "NotFoundError",
    "ProverError",
    "RegistryError",
    "RegistryException",
    "RootMismatchError",
    "SnapshotFormatError",
    "StoreCorruptedError",
    "TransportError",
    # Identity
    "APPROVED_STATUSES",
    "TREE_MEMBER_STATUSES",
    "FieldElement",
    "IdentityFields",
    "IdentityRecord",
    "RecordAction",
    "RecordStateMachine",
    "RecordStatus",
    "StatusTag",
    "utc_now",
    # Snapshots
    "CachedAccumulator",
    "Snapshot",
    "SnapshotMetadata",
]
