"""
Module 09D - Identity Routes

Subject lifecycle endpoints:
- POST /submit, /approve, /verify, /revoke
- GET /is-verified/{subject_id}, /is-approved/{subject_id},
  /has-submitted/{subject_id}, /pending
- POST /identity-approval

Handlers are plain ``def`` so FastAPI runs the blocking engine calls
in its threadpool.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from api.deps import get_engine
from api.models.requests import (
    IdentityFieldsRequest,
    RevokeRequest,
    SubjectRequest,
    SubmitRequest,
    VerifyIdentityRequest,
)
from api.models.responses import (
    FlagResponse,
    IdentityApprovalResponse,
    PendingResponse,
    PublishInfo,
    RecordResponse,
    RegistryUpdateResponse,
    VerificationResponse,
)
from orchestrator.engine import ReconciliationEngine, RegistryUpdate


logger = logging.getLogger(__name__)

router = APIRouter(tags=["identity"])


def _update_response(update: RegistryUpdate) -> RegistryUpdateResponse:
    return RegistryUpdateResponse(
        ok=True,
        record=update.record.public_view(),
        publish=PublishInfo(**update.publish.to_dict()),
    )


@router.post("/submit", response_model=RecordResponse)
def submit_identity(
    request: SubmitRequest,
    engine: ReconciliationEngine = Depends(get_engine),
) -> RecordResponse:
    """Register a subject's identity as pending."""
    record = engine.submit(request.subject_id, request.to_fields())
    return RecordResponse(ok=True, record=record.public_view())


@router.post("/approve", response_model=RegistryUpdateResponse)
def approve_identity(
    request: SubjectRequest,
    engine: ReconciliationEngine = Depends(get_engine),
) -> RegistryUpdateResponse:
    """Approve a pending subject and publish the new root."""
    logger.info(f"Approve requested for '{request.subject_id}'")
    return _update_response(engine.approve(request.subject_id))


@router.post("/verify", response_model=VerificationResponse)
def verify_identity(
    request: VerifyIdentityRequest,
    engine: ReconciliationEngine = Depends(get_engine),
) -> VerificationResponse:
    """Prove membership of an approved subject and record it on the ledger."""
    outcome = engine.verify(request.subject_id, request.to_fields())
    return VerificationResponse(ok=True, **outcome.to_dict())


@router.post("/revoke", response_model=RegistryUpdateResponse)
def revoke_identity(
    request: RevokeRequest,
    engine: ReconciliationEngine = Depends(get_engine),
) -> RegistryUpdateResponse:
    """Revoke an approved or verified subject."""
    logger.info(f"Revoke requested for '{request.subject_id}'")
    return _update_response(engine.revoke(request.subject_id, request.reason))


@router.get("/is-verified/{subject_id}", response_model=FlagResponse)
def is_verified(
    subject_id: str,
    engine: ReconciliationEngine = Depends(get_engine),
) -> FlagResponse:
    return FlagResponse(ok=True, subject_id=subject_id, value=engine.is_verified(subject_id))


@router.get("/is-approved/{subject_id}", response_model=FlagResponse)
def is_approved(
    subject_id: str,
    engine: ReconciliationEngine = Depends(get_engine),
) -> FlagResponse:
    return FlagResponse(ok=True, subject_id=subject_id, value=engine.is_approved(subject_id))


@router.get("/has-submitted/{subject_id}", response_model=FlagResponse)
def has_submitted(
    subject_id: str,
    engine: ReconciliationEngine = Depends(get_engine),
) -> FlagResponse:
    return FlagResponse(ok=True, subject_id=subject_id, value=engine.has_submitted(subject_id))


@router.get("/pending", response_model=PendingResponse)
def list_pending(engine: ReconciliationEngine = Depends(get_engine)) -> PendingResponse:
    """Pending records, oldest submission first."""
    records = [r.public_view() for r in engine.pending_records()]
    return PendingResponse(ok=True, count=len(records), records=records)


@router.post("/identity-approval", response_model=IdentityApprovalResponse)
def identity_approval(
    request: IdentityFieldsRequest,
    engine: ReconciliationEngine = Depends(get_engine),
) -> IdentityApprovalResponse:
    """Ask the ledger whether an identity is approved, by its fields alone."""
    result = engine.check_identity_approval(request.to_fields())
    return IdentityApprovalResponse(ok=True, **result)
