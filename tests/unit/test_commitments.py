"""
Module 02 - Commitment Hasher Unit Tests
Tests for core/crypto/commitments.py

Tests:
- Field encoding rules (numeric vs text, rejection of malformed input)
- Identity commitment depends only on identity fields
- Leaf commitment binds salt and status tag
- Salt generation width
"""
import pytest

from core.crypto.commitments import (
    SALT_BITS,
    encode_identity_fields,
    encode_numeric_field,
    encode_text_field,
    generate_salt,
    identity_commitment,
    leaf_commitment,
)
from core.crypto.hashing import FIELD_MODULUS, field_hash
from core.schemas.errors import EncodingError
from core.schemas.identity import IdentityFields, StatusTag

from fixtures.common import make_identity_fields


class TestFieldEncoding:
    """Tests for individual field encoders."""

    def test_numeric_field_is_decimal_value(self):
        assert encode_numeric_field("19900101", "birth_date") == 19900101

    def test_numeric_field_leading_zeros_ignored(self):
        assert encode_numeric_field("007", "national_id") == 7

    def test_numeric_field_rejects_letters(self):
        with pytest.raises(EncodingError) as exc_info:
            encode_numeric_field("12a4", "national_id")
        assert exc_info.value.details["field"] == "national_id"

    def test_numeric_field_rejects_non_ascii_digits(self):
        with pytest.raises(EncodingError):
            encode_numeric_field("١٢٣", "national_id")

    def test_numeric_field_rejects_empty(self):
        with pytest.raises(EncodingError):
            encode_numeric_field("", "birth_date")

    def test_numeric_field_rejects_oversized(self):
        with pytest.raises(EncodingError):
            encode_numeric_field(str(FIELD_MODULUS), "national_id")

    def test_text_field_is_utf8_big_endian(self):
        assert encode_text_field("AB", "name") == 0x4142

    def test_text_field_non_ascii(self):
        expected = int.from_bytes("Zoë".encode("utf-8"), "big")
        assert encode_text_field("Zoë", "name") == expected

    def test_text_field_rejects_empty(self):
        with pytest.raises(EncodingError):
            encode_text_field("", "key")

    def test_text_field_rejects_oversized(self):
        with pytest.raises(EncodingError):
            encode_text_field("x" * 40, "key")

    def test_field_order(self):
        fields = make_identity_fields(
            national_id="11", name="A", birth_date="22", key="B"
        )
        assert encode_identity_fields(fields) == (11, 0x41, 22, 0x42)


class TestIdentityCommitment:
    """Tests for identity_commitment()."""

    def test_deterministic(self):
        assert identity_commitment(make_identity_fields()) == identity_commitment(
            make_identity_fields()
        )

    def test_is_field_hash_of_encoded_fields(self):
        fields = make_identity_fields()
        assert identity_commitment(fields) == field_hash(*encode_identity_fields(fields))

    @pytest.mark.parametrize("field_name,value", [
        ("national_id", "3201012345679999"),
        ("name", "Alice W."),
        ("birth_date", "19900102"),
        ("key", "other-secret"),
    ])
    def test_each_field_changes_commitment(self, field_name, value):
        base = make_identity_fields()
        changed = make_identity_fields(**{field_name: value})
        assert identity_commitment(base) != identity_commitment(changed)

    def test_int_numeric_fields_accepted(self):
        as_str = make_identity_fields(national_id="1234", birth_date="19900101")
        as_int = IdentityFields(national_id=1234, name=as_str.name, birth_date=19900101, key=as_str.key)
        assert identity_commitment(as_int) == identity_commitment(as_str)

    def test_malformed_fields_raise(self):
        with pytest.raises(EncodingError):
            identity_commitment(make_identity_fields(birth_date="1990-01-01"))


class TestLeafCommitment:
    """Tests for leaf_commitment()."""

    def test_default_tag_is_active(self):
        identity = identity_commitment(make_identity_fields())
        assert leaf_commitment(identity, 42) == leaf_commitment(identity, 42, StatusTag.ACTIVE)

    def test_salt_changes_leaf(self):
        identity = identity_commitment(make_identity_fields())
        assert leaf_commitment(identity, 1) != leaf_commitment(identity, 2)

    def test_tag_changes_leaf(self):
        identity = identity_commitment(make_identity_fields())
        assert leaf_commitment(identity, 9, StatusTag.ACTIVE) != leaf_commitment(
            identity, 9, StatusTag.REVOKED
        )

    def test_matches_field_hash(self):
        assert leaf_commitment(5, 6, StatusTag.REVOKED) == field_hash(5, 6, 0)

    def test_out_of_field_salt_raises(self):
        with pytest.raises(EncodingError):
            leaf_commitment(5, FIELD_MODULUS)


class TestSalt:
    """Tests for generate_salt()."""

    def test_salt_width(self):
        for _ in range(20):
            salt = generate_salt()
            assert 0 <= salt < 2**SALT_BITS

    def test_salts_differ(self):
        assert len({generate_salt() for _ in range(10)}) == 10
