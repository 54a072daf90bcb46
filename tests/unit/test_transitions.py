"""
Module 01 - Record Lifecycle Unit Tests
Tests for core/schemas/identity.py

Tests:
- Allowed transitions and their targets
- Rejected transitions raise InvalidStateError with details
- Tree membership and status tags per state
- Schema version validation
"""
import pytest
from pydantic import ValidationError

from core.schemas.errors import InvalidStateError
from core.schemas.identity import (
    IdentityRecord,
    RecordAction,
    RecordStateMachine,
    RecordStatus,
    StatusTag,
)

from fixtures.common import make_record


ALLOWED = [
    (RecordStatus.PENDING, RecordAction.APPROVE, RecordStatus.APPROVED),
    (RecordStatus.APPROVED, RecordAction.VERIFY, RecordStatus.VERIFIED),
    (RecordStatus.VERIFIED, RecordAction.VERIFY, RecordStatus.VERIFIED),
    (RecordStatus.APPROVED, RecordAction.REVOKE, RecordStatus.REVOKED),
    (RecordStatus.VERIFIED, RecordAction.REVOKE, RecordStatus.REVOKED),
]

REJECTED = [
    (RecordStatus.PENDING, RecordAction.VERIFY),
    (RecordStatus.PENDING, RecordAction.REVOKE),
    (RecordStatus.APPROVED, RecordAction.APPROVE),
    (RecordStatus.VERIFIED, RecordAction.APPROVE),
    (RecordStatus.REVOKED, RecordAction.APPROVE),
    (RecordStatus.REVOKED, RecordAction.VERIFY),
    (RecordStatus.REVOKED, RecordAction.REVOKE),
]


class TestStateMachine:
    """Tests for RecordStateMachine."""

    @pytest.mark.parametrize("source,action,target", ALLOWED)
    def test_allowed(self, source, action, target):
        record = make_record(status=source)
        RecordStateMachine.apply(record, action)
        assert record.status == target

    @pytest.mark.parametrize("source,action", REJECTED)
    def test_rejected(self, source, action):
        record = make_record(status=source)
        with pytest.raises(InvalidStateError) as exc_info:
            RecordStateMachine.apply(record, action)

        assert record.status == source
        assert exc_info.value.details["current_status"] == source.value
        assert exc_info.value.details["action"] == action.value

    def test_allowed_sources(self):
        assert RecordStateMachine.allowed_sources(RecordAction.APPROVE) == frozenset({RecordStatus.PENDING})


class TestRecordProperties:
    """Tests for per-state record properties."""

    @pytest.mark.parametrize("status,member", [
        (RecordStatus.PENDING, False),
        (RecordStatus.APPROVED, True),
        (RecordStatus.VERIFIED, True),
        (RecordStatus.REVOKED, True),
    ])
    def test_tree_membership(self, status, member):
        assert make_record(status=status).is_tree_member is member

    def test_status_tag(self):
        assert make_record(status=RecordStatus.APPROVED).status_tag == StatusTag.ACTIVE
        assert make_record(status=RecordStatus.REVOKED).status_tag == StatusTag.REVOKED

    def test_revoked_is_inactive(self):
        assert not make_record(status=RecordStatus.REVOKED).is_active
        assert make_record(status=RecordStatus.PENDING).is_active

    def test_public_view_hides_salt(self):
        view = make_record(salt=42).public_view()
        assert "salt" not in view
        assert view["status"] == "pending"
        assert isinstance(view["identity_commitment"], str)

    def test_unsupported_schema_version(self):
        data = {**make_record().model_dump(mode="json"), "schema_version": "v9"}
        with pytest.raises(ValidationError):
            IdentityRecord.model_validate(data)

    def test_negative_salt_rejected(self):
        with pytest.raises(ValidationError):
            make_record(salt=-1)
