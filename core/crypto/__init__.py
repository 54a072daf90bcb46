"""
Core cryptographic utilities.

Module 02 provides field hashing and the commitment hasher.
"""
from .hashing import (
    FIELD_MODULUS,
    sha256,
    check_field_element,
    field_hash,
    two_to_one,
)
from .commitments import (
    encode_identity_fields,
    identity_commitment,
    leaf_commitment,
    generate_salt,
)

__all__ = [
    "FIELD_MODULUS",
    "sha256",
    "check_field_element",
    "field_hash",
    "two_to_one",
    "encode_identity_fields",
    "identity_commitment",
    "leaf_commitment",
    "generate_salt",
]
