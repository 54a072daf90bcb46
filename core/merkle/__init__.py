"""
Module 02 - Merkle Accumulator
Fixed-depth Merkle accumulator + inclusion path generation/verification.

Owner: Protocol/Crypto Engineer
Module ID: M02

This module provides:
- Accumulator: fixed-depth tree over leaf commitments
- MerklePath: inclusion path (siblings + direction bits)
- compute_root_from_path / verify_path: path verification

Accumulator Rules:
1. Padding: ZERO_LEAF on the right up to 2^depth leaves
2. Parent hashing: two_to_one(left, right)
3. Direction bit 1 = sibling on the right, 0 = sibling on the left

Usage:
    from core.merkle import Accumulator, verify_path
    from core.crypto import leaf_commitment

    leaves = [leaf_commitment(identity, salt) for identity, salt in members]
    acc = Accumulator.build(leaves, depth=16)
    path = acc.proof(index=2)
    assert verify_path(path)
"""
from .accumulator import (
    ZERO_LEAF,
    DEFAULT_TREE_DEPTH,
    MIN_TREE_DEPTH,
    MAX_TREE_DEPTH,
    SIBLING_LEFT,
    SIBLING_RIGHT,
    check_depth,
    Accumulator,
    MerklePath,
    compute_root_from_path,
    verify_path,
)

from .merkle_proofs import (
    MerkleProver,
    MerkleVerifier,
)


__all__ = [
    # Core types
    "Accumulator",
    "MerklePath",
    # Constants
    "ZERO_LEAF",
    "DEFAULT_TREE_DEPTH",
    "MIN_TREE_DEPTH",
    "MAX_TREE_DEPTH",
    "SIBLING_LEFT",
    "SIBLING_RIGHT",
    # Core functions
    "check_depth",
    "compute_root_from_path",
    "verify_path",
    # Convenience classes
    "MerkleProver",
    "MerkleVerifier",
]
