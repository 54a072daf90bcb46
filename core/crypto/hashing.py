"""
Module 02 - Hashing Utilities
Field-element hashing for identity commitments and the Merkle accumulator.

Owner: Protocol/Crypto Engineer
Module ID: M02

This module provides:
- SHA-256 hashing for raw bytes
- field_hash: arity-prefixed hash of field elements, reduced into the
  BN254 scalar field used by the proving system
- two_to_one: the accumulator's binary compression function

Hash Rules (Hard Contracts):
1. Every input element is an int in [0, FIELD_MODULUS)
2. field_hash(x1..xn) = int(sha256(n || x1 || ... || xn)) mod FIELD_MODULUS,
   with n as one byte and each xi as 32-byte big-endian
3. two_to_one(l, r) = field_hash(l, r); order-sensitive
"""
from __future__ import annotations

import hashlib

from core.schemas.errors import EncodingError


# BN254 scalar field modulus
FIELD_MODULUS: int = (
    21888242871839275222246405745257275088548364400416034343698204186575808495617
)

# Field elements are encoded as 32 bytes
ELEMENT_BYTES: int = 32

# Upper bound on elements per field_hash call (arity fits one byte)
MAX_ARITY: int = 16


def sha256(data: bytes) -> bytes:
    """
    Compute SHA-256 hash of raw bytes.

    Example:
        >>> sha256(b"hello").hex()
        '2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824'
    """
    return hashlib.sha256(data).digest()


def check_field_element(value: int, name: str = "element") -> int:
    """
    Validate that a value is a canonical field element.

    Raises:
        EncodingError: If the value is not an int in [0, FIELD_MODULUS).
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise EncodingError(
            f"{name} must be an int, got {type(value).__name__}",
            field_name=name,
        )
    if value < 0 or value >= FIELD_MODULUS:
        raise EncodingError(
            f"{name} is outside the field range",
            field_name=name,
            details={"bits": value.bit_length()},
        )
    return value


def field_hash(*elements: int) -> int:
    """
    Hash an ordered tuple of field elements into a field element.

    Args:
        *elements: 1..MAX_ARITY field elements

    Returns:
        Field element in [0, FIELD_MODULUS)

    Raises:
        EncodingError: On an empty tuple, too many elements, or any
            element outside the field.
    """
    if not elements or len(elements) > MAX_ARITY:
        raise EncodingError(
            f"field_hash takes 1..{MAX_ARITY} elements, got {len(elements)}"
        )
    buf = bytearray([len(elements)])
    for i, element in enumerate(elements):
        check_field_element(element, f"element[{i}]")
        buf += element.to_bytes(ELEMENT_BYTES, "big")
    return int.from_bytes(sha256(bytes(buf)), "big") % FIELD_MODULUS


def two_to_one(left: int, right: int) -> int:
    """
    Compute the parent of two accumulator nodes.

    Order-sensitive: two_to_one(a, b) != two_to_one(b, a) in general.
    """
    return field_hash(left, right)


__all__ = [
    "FIELD_MODULUS",
    "ELEMENT_BYTES",
    "MAX_ARITY",
    "sha256",
    "check_field_element",
    "field_hash",
    "two_to_one",
]
