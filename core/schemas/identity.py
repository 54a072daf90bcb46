"""
Module 01 - Schemas & Canonicalization
File: identity.py

Purpose: Identity record schemas and the record lifecycle.

Record lifecycle:
    PENDING → APPROVED → VERIFIED
    APPROVED | VERIFIED → REVOKED

Records are never physically deleted; only an explicit store reset
removes them. Transitions not listed in the table are rejected.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Annotated, Any, Optional

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
)

from .canonical import decode_decimal, encode_decimal
from .errors import CanonicalizationException, InvalidStateError
from .versioning import SCHEMA_VERSION, assert_supported_schema_version


def _parse_field_element(value: Any) -> int:
    try:
        return decode_decimal(value)
    except CanonicalizationException as e:
        raise ValueError(e.message) from e


# Wide non-negative integer; JSON form is always a decimal string.
FieldElement = Annotated[
    int,
    BeforeValidator(_parse_field_element),
    PlainSerializer(encode_decimal, return_type=str, when_used="json"),
]


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


class RecordStatus(str, Enum):
    """Closed set of record states."""

    PENDING = "pending"
    APPROVED = "approved"
    VERIFIED = "verified"
    REVOKED = "revoked"


class RecordAction(str, Enum):
    """Actions that move a record between states."""

    APPROVE = "approve"
    VERIFY = "verify"
    REVOKE = "revoke"


class StatusTag(IntEnum):
    """Tag bound into every leaf commitment."""

    REVOKED = 0
    ACTIVE = 1


# {action: (allowed source states, target state)}
_TRANSITIONS: dict[RecordAction, tuple[frozenset[RecordStatus], RecordStatus]] = {
    RecordAction.APPROVE: (
        frozenset({RecordStatus.PENDING}),
        RecordStatus.APPROVED,
    ),
    RecordAction.VERIFY: (
        frozenset({RecordStatus.APPROVED, RecordStatus.VERIFIED}),
        RecordStatus.VERIFIED,
    ),
    RecordAction.REVOKE: (
        frozenset({RecordStatus.APPROVED, RecordStatus.VERIFIED}),
        RecordStatus.REVOKED,
    ),
}

# States whose records hold a leaf in the accumulator
TREE_MEMBER_STATUSES: frozenset[RecordStatus] = frozenset({
    RecordStatus.APPROVED,
    RecordStatus.VERIFIED,
    RecordStatus.REVOKED,
})

# States whose commitments are published as approved
APPROVED_STATUSES: frozenset[RecordStatus] = frozenset({
    RecordStatus.APPROVED,
    RecordStatus.VERIFIED,
})


class IdentityFields(BaseModel):
    """
    Raw identity fields submitted by a subject.

    These are hashed into the identity commitment and then discarded;
    they are never written to the record store or a snapshot.
    Encoding rules are enforced by the commitment hasher, not here,
    so that malformed input surfaces as an EncodingError.
    """

    model_config = ConfigDict(extra="forbid")

    national_id: str = Field(..., description="National identity number (decimal digits)")
    name: str = Field(..., description="Full name (UTF-8 text)")
    birth_date: str = Field(..., description="Birth date as decimal digits, e.g. 19900101")
    key: str = Field(..., description="Subject-held secret key (UTF-8 text)")

    @field_validator("national_id", "birth_date", mode="before")
    @classmethod
    def coerce_numeric(cls, v: Any) -> Any:
        """Accept native ints for the numeric fields."""
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v


class IdentityRecord(BaseModel):
    """
    One registered subject.

    The subject id is a pseudonymous handle; the identity commitment is
    derived only from identity fields. Leaf index is assigned on every
    accumulator rebuild and must not be assumed stable across rebuilds.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    schema_version: str = Field(default=SCHEMA_VERSION)
    subject_id: str = Field(..., min_length=1)
    identity_commitment: FieldElement
    salt: FieldElement
    status: RecordStatus = RecordStatus.PENDING
    leaf_index: Optional[int] = Field(default=None, ge=0)
    submitted_at: datetime = Field(default_factory=utc_now)
    approved_at: Optional[datetime] = None
    verified_at: Optional[datetime] = None
    revoked_at: Optional[datetime] = None
    revocation_reason: Optional[str] = None
    verification_tx: Optional[str] = None

    @field_validator("schema_version")
    @classmethod
    def check_schema_version(cls, v: str) -> str:
        assert_supported_schema_version(v)
        return v

    @property
    def is_active(self) -> bool:
        """Non-revoked records participate in duplicate detection."""
        return self.status != RecordStatus.REVOKED

    @property
    def is_tree_member(self) -> bool:
        return self.status in TREE_MEMBER_STATUSES

    @property
    def status_tag(self) -> StatusTag:
        if self.status == RecordStatus.REVOKED:
            return StatusTag.REVOKED
        return StatusTag.ACTIVE

    def public_view(self) -> dict[str, Any]:
        """Record fields safe to expose to callers (salt omitted)."""
        data = self.model_dump(mode="json", exclude={"salt"})
        return {k: v for k, v in data.items() if v is not None}


class RecordStateMachine:
    """Validates and applies record state transitions.

    Pure computation: persistence and timestamps are handled by the
    reconciliation engine.
    """

    @staticmethod
    def allowed_sources(action: RecordAction) -> frozenset[RecordStatus]:
        return _TRANSITIONS[action][0]

    @staticmethod
    def validate(record: IdentityRecord, action: RecordAction) -> RecordStatus:
        """Return the target state or raise InvalidStateError."""
        sources, target = _TRANSITIONS[action]
        if record.status not in sources:
            allowed = ", ".join(sorted(s.value for s in sources))
            raise InvalidStateError(
                f"Cannot {action.value} '{record.subject_id}' from status "
                f"{record.status.value}; allowed from: [{allowed}]",
                subject_id=record.subject_id,
                current=record.status.value,
                action=action.value,
            )
        return target

    @staticmethod
    def apply(record: IdentityRecord, action: RecordAction) -> IdentityRecord:
        """Validate and apply; mutates and returns the record."""
        record.status = RecordStateMachine.validate(record, action)
        return record
