"""
Module 09D - API Request Models

Pydantic models for API request validation.
"""

from typing import Optional

from pydantic import BaseModel, Field

from core.schemas.identity import IdentityFields


class IdentityFieldsRequest(BaseModel):
    """Identity fields shared by submit, verify and approval lookups."""

    national_id: str = Field(..., min_length=1, description="National identity number (digits)")
    name: str = Field(..., min_length=1, description="Full name")
    birth_date: str = Field(..., min_length=1, description="Birth date as digits, e.g. 19900101")
    key: str = Field(..., min_length=1, description="Subject-held secret key")

    def to_fields(self) -> IdentityFields:
        return IdentityFields(
            national_id=self.national_id,
            name=self.name,
            birth_date=self.birth_date,
            key=self.key,
        )


class SubmitRequest(IdentityFieldsRequest):
    """Request body for POST /submit endpoint."""

    subject_id: str = Field(..., min_length=1, max_length=256)


class VerifyIdentityRequest(IdentityFieldsRequest):
    """Request body for POST /verify endpoint."""

    subject_id: str = Field(..., min_length=1, max_length=256)


class SubjectRequest(BaseModel):
    """Request body for POST /approve endpoint."""

    subject_id: str = Field(..., min_length=1, max_length=256)


class RevokeRequest(BaseModel):
    """Request body for POST /revoke endpoint."""

    subject_id: str = Field(..., min_length=1, max_length=256)
    reason: Optional[str] = Field(default=None, max_length=1000)


class SnapshotLoadRequest(BaseModel):
    """Request body for POST /snapshot/load endpoint."""

    snapshot_id: Optional[str] = Field(
        default=None,
        description="Content id to load; defaults to the ledger's current snapshot",
    )
