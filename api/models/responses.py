"""
Module 09D - API Response Models

Pydantic models for API response serialization. Wide numeric values
(commitments, roots) are always decimal strings.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response for GET /health endpoint."""

    ok: bool = True
    service: str = "idreg-api"
    version: str = "v1"


class RecordResponse(BaseModel):
    """A single record (salt omitted)."""

    ok: bool = True
    record: dict[str, Any] = Field(..., description="Public view of the record")


class PublishInfo(BaseModel):
    """Outcome of a rebuild-and-publish sequence."""

    root: str = Field(..., description="New accumulator root (decimal)")
    snapshot_id: str = Field(..., description="Content id of the stored snapshot")
    leaf_count: int
    tx_ref: Optional[str] = Field(default=None, description="Ledger transaction reference")
    confirmed_by_read: bool = False


class RegistryUpdateResponse(BaseModel):
    """Response for POST /approve and POST /revoke."""

    ok: bool = True
    record: dict[str, Any]
    publish: PublishInfo


class VerificationResponse(BaseModel):
    """Response for POST /verify."""

    ok: bool = True
    subject_id: str
    status: str
    tx_ref: str
    root: str
    leaf_index: int
    reloaded: bool = Field(default=False, description="Whether a snapshot reload was needed")


class FlagResponse(BaseModel):
    """Boolean status lookup for a subject."""

    ok: bool = True
    subject_id: str
    value: bool


class IdentityApprovalResponse(BaseModel):
    """Response for POST /identity-approval."""

    ok: bool = True
    identity_commitment: str
    approved: bool


class PendingResponse(BaseModel):
    """Response for GET /pending."""

    ok: bool = True
    count: int
    records: list[dict[str, Any]] = Field(default_factory=list)


class RootResponse(BaseModel):
    """Response for GET /current-root."""

    ok: bool = True
    local_root: Optional[str] = None
    ledger_root: Optional[str] = None
    in_sync: Optional[bool] = None


class ValidRootResponse(BaseModel):
    """Response for GET /valid-root/{root}."""

    ok: bool = True
    root: str
    valid: bool


class RegistryInfoResponse(BaseModel):
    """Response for GET /registry-info."""

    ok: bool = True
    info: dict[str, Any]


class SnapshotResponse(BaseModel):
    """Response for POST /snapshot/load and POST /snapshot/save."""

    ok: bool = True
    snapshot_id: Optional[str] = None
    root: Optional[str] = None
    leaf_count: Optional[int] = None
    record_count: Optional[int] = None


class ErrorDetail(BaseModel):
    """Detailed error information."""

    code: str = Field(..., description="Error code")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] = Field(default_factory=dict)
    retryable: bool = False


class ErrorResponse(BaseModel):
    """Standard error response."""

    ok: bool = False
    error: ErrorDetail = Field(..., description="Error details")
