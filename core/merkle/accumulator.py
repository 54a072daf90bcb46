"""
Module 02 - Merkle Accumulator
Fixed-depth binary hash tree over leaf commitments.

Owner: Protocol/Crypto Engineer
Module ID: M02

This module provides:
- Accumulator: full fixed-depth tree with every level materialized
- MerklePath: inclusion path (siblings + direction bits) for one leaf
- compute_root_from_path / verify_path: recompute a root from a path

Accumulator Rules (Hard Contracts):
1. Leaves are padded on the right with ZERO_LEAF up to 2^depth entries
2. Parent hashing: parent = two_to_one(left, right)
3. Every build is a full reconstruction; there is no incremental update
4. Direction bit per level: 1 = sibling is the right node,
   0 = sibling is the left node
5. Index in [leaf_count, 2^depth) is valid and proves a zero leaf;
   index outside [0, 2^depth) raises IndexOutOfRangeError

Determinism Notes:
- The root is a pure function of (ordered leaves, depth)
- This module never sorts leaves; ordering is the caller's enumeration
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from core.crypto.hashing import check_field_element, two_to_one
from core.schemas.errors import (
    CapacityExceededError,
    EncodingError,
    IndexOutOfRangeError,
)
from core.schemas.snapshot import MAX_TREE_DEPTH, MIN_TREE_DEPTH


# Padding value for unused leaf positions
ZERO_LEAF: int = 0

DEFAULT_TREE_DEPTH: int = 16

SIBLING_LEFT: int = 0
SIBLING_RIGHT: int = 1


def check_depth(depth: int) -> int:
    """Validate a tree depth."""
    if isinstance(depth, bool) or not isinstance(depth, int):
        raise ValueError(f"Tree depth must be an int, got {type(depth).__name__}")
    if depth < MIN_TREE_DEPTH or depth > MAX_TREE_DEPTH:
        raise ValueError(
            f"Tree depth must be in [{MIN_TREE_DEPTH}, {MAX_TREE_DEPTH}], got {depth}"
        )
    return depth


@dataclass(frozen=True)
class MerklePath:
    """
    Inclusion path for a single leaf.

    Attributes:
        leaf: The leaf value being proven
        leaf_index: 0-based position of the leaf
        siblings: Sibling values from the leaf level upward (depth entries)
        directions: Direction bit per level (1 = sibling on the right)
        root: The root this path reconstructs
    """
    leaf: int
    leaf_index: int
    siblings: tuple[int, ...]
    directions: tuple[int, ...]
    root: int

    def __post_init__(self) -> None:
        if self.leaf_index < 0:
            raise ValueError(f"Leaf index must be non-negative, got {self.leaf_index}")
        if len(self.siblings) != len(self.directions):
            raise ValueError(
                f"Path has {len(self.siblings)} siblings but "
                f"{len(self.directions)} directions"
            )

    @property
    def depth(self) -> int:
        return len(self.siblings)

    def to_dict(self) -> dict[str, object]:
        """JSON-safe form with wide values as decimal strings."""
        return {
            "leaf": str(self.leaf),
            "leaf_index": self.leaf_index,
            "siblings": [str(s) for s in self.siblings],
            "directions": list(self.directions),
            "root": str(self.root),
        }


class Accumulator:
    """
    Fixed-depth Merkle accumulator.

    Construct with Accumulator.build(); instances are treated as
    immutable once built.

    Example:
        >>> acc = Accumulator.build([11, 22, 33], depth=2)
        >>> path = acc.proof(2)
        >>> verify_path(path)
        True
    """

    def __init__(self, depth: int, leaf_count: int, levels: list[list[int]]) -> None:
        self._depth = depth
        self._leaf_count = leaf_count
        self._levels = levels

    @classmethod
    def build(cls, leaves: Sequence[int], depth: int = DEFAULT_TREE_DEPTH) -> "Accumulator":
        """
        Build the full tree from an ordered leaf sequence.

        Args:
            leaves: Ordered leaf commitments (position = leaf index)
            depth: Tree depth D; capacity is 2^D

        Returns:
            Accumulator with all D + 1 levels materialized

        Raises:
            CapacityExceededError: If more than 2^D leaves are given
            EncodingError: If a leaf is not a field element
        """
        check_depth(depth)
        capacity = 1 << depth
        if len(leaves) > capacity:
            raise CapacityExceededError(len(leaves), capacity)

        level: list[int] = [
            check_field_element(leaf, f"leaves[{i}]") for i, leaf in enumerate(leaves)
        ]
        level.extend([ZERO_LEAF] * (capacity - len(level)))

        levels: list[list[int]] = [level]
        while len(level) > 1:
            level = [
                two_to_one(level[i], level[i + 1])
                for i in range(0, len(level), 2)
            ]
            levels.append(level)

        return cls(depth=depth, leaf_count=len(leaves), levels=levels)

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def capacity(self) -> int:
        return 1 << self._depth

    @property
    def leaf_count(self) -> int:
        """Number of real (non-padding) leaves."""
        return self._leaf_count

    @property
    def leaves(self) -> list[int]:
        """The real leaves, without padding."""
        return list(self._levels[0][: self._leaf_count])

    def root(self) -> int:
        return self._levels[-1][0]

    def leaf(self, index: int) -> int:
        self._check_index(index)
        return self._levels[0][index]

    def index_of(self, leaf: int) -> int | None:
        """First real index holding the given leaf value, if any."""
        for i in range(self._leaf_count):
            if self._levels[0][i] == leaf:
                return i
        return None

    def proof(self, index: int) -> MerklePath:
        """
        Generate the inclusion path for the leaf at the given index.

        Walks from the leaf upward; at each level records the sibling of
        the current node and whether it sits on the left or the right.

        Raises:
            IndexOutOfRangeError: If index is outside [0, 2^depth)
        """
        self._check_index(index)

        siblings: list[int] = []
        directions: list[int] = []
        current = index
        for level in self._levels[:-1]:
            if current % 2 == 0:
                siblings.append(level[current + 1])
                directions.append(SIBLING_RIGHT)
            else:
                siblings.append(level[current - 1])
                directions.append(SIBLING_LEFT)
            current //= 2

        return MerklePath(
            leaf=self._levels[0][index],
            leaf_index=index,
            siblings=tuple(siblings),
            directions=tuple(directions),
            root=self.root(),
        )

    def _check_index(self, index: int) -> None:
        if isinstance(index, bool) or not isinstance(index, int):
            raise TypeError(f"Leaf index must be an int, got {type(index).__name__}")
        if index < 0 or index >= self.capacity:
            raise IndexOutOfRangeError(index, self.capacity)

    def __repr__(self) -> str:
        return (
            f"Accumulator(depth={self._depth}, leaf_count={self._leaf_count}, "
            f"root={self.root()})"
        )


def compute_root_from_path(
    leaf: int,
    siblings: Sequence[int],
    directions: Sequence[int],
) -> int:
    """
    Recompute a root from a leaf and its inclusion path.

    Raises:
        ValueError: If siblings and directions differ in length or a
            direction is not 0/1
    """
    if len(siblings) != len(directions):
        raise ValueError(
            f"Path has {len(siblings)} siblings but {len(directions)} directions"
        )
    current = leaf
    for sibling, direction in zip(siblings, directions):
        if direction == SIBLING_RIGHT:
            current = two_to_one(current, sibling)
        elif direction == SIBLING_LEFT:
            current = two_to_one(sibling, current)
        else:
            raise ValueError(f"Direction bits must be 0 or 1, got {direction!r}")
    return current


def verify_path(path: MerklePath) -> bool:
    """Check that a path reconstructs its claimed root."""
    try:
        return compute_root_from_path(path.leaf, path.siblings, path.directions) == path.root
    except (ValueError, EncodingError):
        return False


__all__ = [
    "ZERO_LEAF",
    "DEFAULT_TREE_DEPTH",
    "MIN_TREE_DEPTH",
    "MAX_TREE_DEPTH",
    "SIBLING_LEFT",
    "SIBLING_RIGHT",
    "check_depth",
    "MerklePath",
    "Accumulator",
    "compute_root_from_path",
    "verify_path",
]
