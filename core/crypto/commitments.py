"""
Module 02 - Commitment Hasher
Identity and leaf commitments.

Owner: Protocol/Crypto Engineer
Module ID: M02

Commitment Rules (Hard Contracts):
1. Identity fields are encoded in fixed order:
   (national_id, name, birth_date, key)
   - numeric fields: decimal digits → int
   - text fields: UTF-8 bytes → big-endian int
2. identity_commitment = field_hash(encoded fields)
   Depends only on identity fields, never on the subject id.
3. leaf_commitment = field_hash(identity_commitment, salt, status_tag)
   Changing salt or tag changes the leaf.
"""
from __future__ import annotations

import secrets
from typing import Union

from core.crypto.hashing import check_field_element, field_hash
from core.schemas.errors import EncodingError
from core.schemas.identity import IdentityFields, StatusTag


# Salt width matches the reference system (16 random bytes)
SALT_BITS: int = 128

NUMERIC_FIELDS: tuple[str, ...] = ("national_id", "birth_date")
TEXT_FIELDS: tuple[str, ...] = ("name", "key")
FIELD_ORDER: tuple[str, ...] = ("national_id", "name", "birth_date", "key")


def encode_numeric_field(value: str, name: str) -> int:
    """Encode a decimal-digit field as a field element."""
    if not isinstance(value, str) or not value:
        raise EncodingError(f"{name} must be a non-empty digit string", field_name=name)
    if not value.isascii() or not value.isdigit():
        raise EncodingError(f"{name} must contain only decimal digits", field_name=name)
    return check_field_element(int(value), name)


def encode_text_field(value: str, name: str) -> int:
    """Encode a UTF-8 text field as a field element."""
    if not isinstance(value, str) or not value:
        raise EncodingError(f"{name} must be a non-empty string", field_name=name)
    return check_field_element(int.from_bytes(value.encode("utf-8"), "big"), name)


def encode_identity_fields(fields: IdentityFields) -> tuple[int, ...]:
    """
    Encode identity fields to the ordered element tuple the circuit expects.

    Raises:
        EncodingError: On empty, non-numeric or oversized fields.
    """
    encoded: list[int] = []
    for name in FIELD_ORDER:
        value = getattr(fields, name)
        if name in NUMERIC_FIELDS:
            encoded.append(encode_numeric_field(value, name))
        else:
            encoded.append(encode_text_field(value, name))
    return tuple(encoded)


def identity_commitment(fields: IdentityFields) -> int:
    """
    Derive the identity commitment from identity fields.

    Identical field values always yield the identical commitment, which
    is what makes re-submission detectable.
    """
    return field_hash(*encode_identity_fields(fields))


def leaf_commitment(
    identity: int,
    salt: int,
    status_tag: Union[StatusTag, int] = StatusTag.ACTIVE,
) -> int:
    """Bind an identity commitment to its salt and status tag."""
    return field_hash(
        check_field_element(identity, "identity_commitment"),
        check_field_element(salt, "salt"),
        int(status_tag),
    )


def generate_salt() -> int:
    """Fresh random salt; generated once per record at submission."""
    return secrets.randbits(SALT_BITS)


__all__ = [
    "SALT_BITS",
    "FIELD_ORDER",
    "encode_numeric_field",
    "encode_text_field",
    "encode_identity_fields",
    "identity_commitment",
    "leaf_commitment",
    "generate_salt",
]
