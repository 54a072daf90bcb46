"""
Module 01 - Schemas & Canonicalization
File: errors.py

Purpose: Standard error taxonomy across the identity registry.
Defines both Pydantic models for structured error communication
and Python exceptions for control flow.

Retry semantics:
- Encoding and caller-input errors are never retried.
- RootMismatch is surfaced after one reload; the caller starts a fresh verify.
- LedgerRejected is surfaced verbatim; the caller must re-derive preconditions.
- TransportError may be retried at the adapter boundary only.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Error Codes (Machine-Readable Constants)
# =============================================================================

class ErrorCodes:
    """Stable machine-readable error codes used across the registry."""

    # Encoding & Serialization Errors
    ENCODING_ERROR = "ENCODING_ERROR"
    CANONICALIZATION_ERROR = "CANONICALIZATION_ERROR"
    SNAPSHOT_FORMAT_ERROR = "SNAPSHOT_FORMAT_ERROR"
    STORE_CORRUPTED = "STORE_CORRUPTED"

    # Accumulator Errors
    INDEX_OUT_OF_RANGE = "INDEX_OUT_OF_RANGE"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"

    # Caller Input Errors
    DUPLICATE_SUBMISSION = "DUPLICATE_SUBMISSION"
    NOT_FOUND = "NOT_FOUND"
    INVALID_STATE = "INVALID_STATE"
    IDENTITY_MISMATCH = "IDENTITY_MISMATCH"

    # Reconciliation Errors
    ROOT_MISMATCH = "ROOT_MISMATCH"

    # Remote Errors
    LEDGER_REJECTED = "LEDGER_REJECTED"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    PROVER_ERROR = "PROVER_ERROR"


# =============================================================================
# Pydantic Error Models (Structured Communication)
# =============================================================================

class RegistryError(BaseModel):
    """
    Base error model for structured error communication.

    Used by the API and CLI to report failures without leaking
    exception objects across process boundaries.
    """

    model_config = ConfigDict(
        extra="forbid",
        frozen=False,
        validate_assignment=True,
    )

    code: str = Field(
        ...,
        description="Stable machine-readable error code",
        examples=[ErrorCodes.NOT_FOUND],
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional structured details about the error",
    )
    retryable: bool = Field(
        default=False,
        description="Whether the operation can be retried",
    )


# =============================================================================
# Python Exceptions (Control Flow)
# =============================================================================

class RegistryException(Exception):
    """
    Base exception for all identity registry errors.

    Carries structured error information and can be converted
    to/from RegistryError models.
    """

    def __init__(
        self,
        message: str,
        code: str = "REGISTRY_ERROR",
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}
        self.retryable = retryable

    def to_error_model(self) -> RegistryError:
        """Convert this exception to a RegistryError model."""
        return RegistryError(
            code=self.code,
            message=self.message,
            details=self.details,
            retryable=self.retryable,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class CanonicalizationException(RegistryException):
    """Exception raised when canonical serialization fails."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.CANONICALIZATION_ERROR,
            details=details,
            retryable=False,
        )


class EncodingError(RegistryException):
    """Malformed identity field or field element (non-numeric, oversized, empty)."""

    def __init__(
        self,
        message: str,
        field_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if field_name:
            full_details["field"] = field_name
        super().__init__(
            message=message,
            code=ErrorCodes.ENCODING_ERROR,
            details=full_details,
            retryable=False,
        )


class IndexOutOfRangeError(RegistryException, IndexError):
    """Leaf index outside [0, 2^depth)."""

    def __init__(self, index: int, capacity: int) -> None:
        super().__init__(
            message=f"Leaf index {index} out of range for capacity {capacity}",
            code=ErrorCodes.INDEX_OUT_OF_RANGE,
            details={"index": index, "capacity": capacity},
            retryable=False,
        )


class CapacityExceededError(RegistryException):
    """More leaves than the fixed-depth tree can hold."""

    def __init__(self, leaf_count: int, capacity: int) -> None:
        super().__init__(
            message=f"{leaf_count} leaves exceed tree capacity {capacity}",
            code=ErrorCodes.CAPACITY_EXCEEDED,
            details={"leaf_count": leaf_count, "capacity": capacity},
            retryable=False,
        )


class DuplicateSubmissionError(RegistryException):
    """An active record already holds this identity commitment."""

    def __init__(
        self,
        message: str,
        subject_id: str | None = None,
        existing_subject_id: str | None = None,
    ) -> None:
        details: dict[str, Any] = {}
        if subject_id:
            details["subject_id"] = subject_id
        if existing_subject_id:
            details["existing_subject_id"] = existing_subject_id
        super().__init__(
            message=message,
            code=ErrorCodes.DUPLICATE_SUBMISSION,
            details=details,
            retryable=False,
        )


class NotFoundError(RegistryException):
    """No record exists for the subject id."""

    def __init__(self, subject_id: str) -> None:
        super().__init__(
            message=f"No record found for subject '{subject_id}'",
            code=ErrorCodes.NOT_FOUND,
            details={"subject_id": subject_id},
            retryable=False,
        )


class InvalidStateError(RegistryException):
    """Record status is not in the allowed source set for an action."""

    def __init__(
        self,
        message: str,
        subject_id: str | None = None,
        current: str | None = None,
        action: str | None = None,
    ) -> None:
        details: dict[str, Any] = {}
        if subject_id:
            details["subject_id"] = subject_id
        if current:
            details["current_status"] = current
        if action:
            details["action"] = action
        super().__init__(
            message=message,
            code=ErrorCodes.INVALID_STATE,
            details=details,
            retryable=False,
        )


class IdentityMismatchError(RegistryException):
    """Provided identity fields do not hash to the stored commitment."""

    def __init__(self, subject_id: str) -> None:
        super().__init__(
            message=f"Identity fields do not match the stored commitment for '{subject_id}'",
            code=ErrorCodes.IDENTITY_MISMATCH,
            details={"subject_id": subject_id},
            retryable=False,
        )


class RootMismatchError(RegistryException):
    """Local accumulator root disagrees with the ledger after reconciliation."""

    def __init__(
        self,
        message: str,
        expected_root: int | None = None,
        actual_root: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if expected_root is not None:
            full_details["expected_root"] = str(expected_root)
        if actual_root is not None:
            full_details["actual_root"] = str(actual_root)
        super().__init__(
            message=message,
            code=ErrorCodes.ROOT_MISMATCH,
            details=full_details,
            retryable=False,
        )


class LedgerRejectedError(RegistryException):
    """The ledger authority refused a publish or a proof."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if operation:
            full_details["operation"] = operation
        super().__init__(
            message=message,
            code=ErrorCodes.LEDGER_REJECTED,
            details=full_details,
            retryable=False,
        )


class TransportError(RegistryException):
    """Network failure talking to the ledger, snapshot store or prover."""

    def __init__(
        self,
        message: str,
        endpoint: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if endpoint:
            full_details["endpoint"] = endpoint
        super().__init__(
            message=message,
            code=ErrorCodes.TRANSPORT_ERROR,
            details=full_details,
            retryable=True,
        )


class SnapshotFormatError(RegistryException):
    """Snapshot blob cannot be decoded or fails its integrity checks."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code=ErrorCodes.SNAPSHOT_FORMAT_ERROR,
            details=details,
            retryable=False,
        )


class StoreCorruptedError(RegistryException):
    """A local store file exists but cannot be parsed."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(
            message=f"Local store file {path} is corrupted: {reason}",
            code=ErrorCodes.STORE_CORRUPTED,
            details={"path": path},
            retryable=False,
        )


class ProverError(RegistryException):
    """The external prover failed to produce a proof."""

    def __init__(
        self,
        message: str,
        circuit_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if circuit_id:
            full_details["circuit_id"] = circuit_id
        super().__init__(
            message=message,
            code=ErrorCodes.PROVER_ERROR,
            details=full_details,
            retryable=False,
        )
