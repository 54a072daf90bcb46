"""API request and response models."""

from api.models.requests import (
    IdentityFieldsRequest,
    RevokeRequest,
    SnapshotLoadRequest,
    SubjectRequest,
    SubmitRequest,
    VerifyIdentityRequest,
)
from api.models.responses import (
    ErrorDetail,
    ErrorResponse,
    FlagResponse,
    HealthResponse,
    IdentityApprovalResponse,
    PendingResponse,
    PublishInfo,
    RecordResponse,
    RegistryInfoResponse,
    RegistryUpdateResponse,
    RootResponse,
    ValidRootResponse,
    SnapshotResponse,
    VerificationResponse,
)

__all__ = [
    "IdentityFieldsRequest",
    "SubmitRequest",
    "VerifyIdentityRequest",
    "SubjectRequest",
    "RevokeRequest",
    "SnapshotLoadRequest",
    "HealthResponse",
    "RecordResponse",
    "PublishInfo",
    "RegistryUpdateResponse",
    "VerificationResponse",
    "FlagResponse",
    "IdentityApprovalResponse",
    "PendingResponse",
    "RootResponse",
    "ValidRootResponse",
    "RegistryInfoResponse",
    "SnapshotResponse",
    "ErrorDetail",
    "ErrorResponse",
]
