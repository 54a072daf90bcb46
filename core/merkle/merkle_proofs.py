"""
Module 02 - Merkle Proofs Convenience Wrappers
Thin wrappers around the accumulator for a cleaner API.

Owner: Protocol/Crypto Engineer
Module ID: M02

This module provides class-based interfaces:
- MerkleProver: Generate inclusion paths for leaves
- MerkleVerifier: Verify inclusion paths

These are convenience wrappers around the functions in accumulator.py.
"""
from __future__ import annotations

from typing import Sequence

from core.crypto.commitments import leaf_commitment
from core.merkle.accumulator import (
    DEFAULT_TREE_DEPTH,
    Accumulator,
    MerklePath,
    compute_root_from_path,
    verify_path,
)
from core.schemas.errors import EncodingError
from core.schemas.identity import StatusTag


class MerkleProver:
    """
    Convenience class for generating inclusion paths.

    Example:
        >>> path = MerkleProver.prove([11, 22, 33], index=1, depth=2)
        >>> path.leaf == 22
        True
    """

    @staticmethod
    def prove(
        leaves: Sequence[int],
        index: int,
        depth: int = DEFAULT_TREE_DEPTH,
    ) -> MerklePath:
        """
        Build the accumulator and return the path for one leaf.

        Raises:
            IndexOutOfRangeError: If index is outside [0, 2^depth)
            CapacityExceededError: If leaves exceed 2^depth
        """
        return Accumulator.build(leaves, depth).proof(index)

    @staticmethod
    def compute_root(leaves: Sequence[int], depth: int = DEFAULT_TREE_DEPTH) -> int:
        """Compute the accumulator root for a leaf sequence."""
        return Accumulator.build(leaves, depth).root()


class MerkleVerifier:
    """
    Convenience class for verifying inclusion paths.

    Example:
        >>> path = MerkleProver.prove([11, 22, 33], index=1, depth=2)
        >>> MerkleVerifier.verify(path)
        True
    """

    @staticmethod
    def verify(path: MerklePath) -> bool:
        return verify_path(path)

    @staticmethod
    def verify_leaf_in_root(
        leaf: int,
        siblings: Sequence[int],
        directions: Sequence[int],
        root: int,
    ) -> bool:
        """
        Verify a leaf is included in a root using raw path components.

        Returns False for malformed paths instead of raising.
        """
        try:
            return compute_root_from_path(leaf, siblings, directions) == root
        except (ValueError, EncodingError):
            return False

    @staticmethod
    def verify_commitment_in_root(
        identity: int,
        salt: int,
        siblings: Sequence[int],
        directions: Sequence[int],
        root: int,
        status_tag: StatusTag = StatusTag.ACTIVE,
    ) -> bool:
        """
        Verify an identity commitment is an active member of a root.

        The leaf is recomputed from (identity, salt, status_tag), so a
        revoked leaf never verifies as active.
        """
        leaf = leaf_commitment(identity, salt, status_tag)
        return MerkleVerifier.verify_leaf_in_root(leaf, siblings, directions, root)


__all__ = [
    "MerkleProver",
    "MerkleVerifier",
]
