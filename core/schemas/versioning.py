"""
Module 01 - Schemas & Canonicalization
File: versioning.py

Version tags for the two persisted formats: identity records (in the
local store and inside snapshots) and snapshot blobs. Kept import-free
so every schema module can depend on it.
"""

# Identity record layout
SCHEMA_VERSION: str = "v1"

# Snapshot blob layout (see orchestrator/snapshots.py)
SNAPSHOT_FORMAT_VERSION: str = "v1"

SUPPORTED_SCHEMA_VERSIONS: frozenset[str] = frozenset({SCHEMA_VERSION})
SUPPORTED_SNAPSHOT_FORMAT_VERSIONS: frozenset[str] = frozenset({SNAPSHOT_FORMAT_VERSION})


class UnsupportedSchemaVersionError(ValueError):
    """A stored record carries a schema version this build cannot read."""

    def __init__(self, version: str) -> None:
        self.version = version
        super().__init__(
            f"Record schema '{version}' is not readable "
            f"(known: {', '.join(sorted(SUPPORTED_SCHEMA_VERSIONS))})"
        )


def assert_supported_schema_version(version: str) -> None:
    if version not in SUPPORTED_SCHEMA_VERSIONS:
        raise UnsupportedSchemaVersionError(version)


def is_compatible_snapshot_version(version: str) -> bool:
    return version in SUPPORTED_SNAPSHOT_FORMAT_VERSIONS
