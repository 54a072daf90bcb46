"""
Module 09D - API Error Handling

Registry exceptions keep their stable error code on the wire; this
module only picks the HTTP status and renders the error envelope.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from api.models.responses import ErrorDetail, ErrorResponse
from core.schemas.errors import ErrorCodes, RegistryException

logger = logging.getLogger(__name__)


# HTTP status per registry error code
REGISTRY_STATUS_CODES: dict[str, int] = {
    ErrorCodes.ENCODING_ERROR: 422,
    ErrorCodes.CANONICALIZATION_ERROR: 422,
    ErrorCodes.INDEX_OUT_OF_RANGE: 400,
    ErrorCodes.CAPACITY_EXCEEDED: 409,
    ErrorCodes.DUPLICATE_SUBMISSION: 409,
    ErrorCodes.NOT_FOUND: 404,
    ErrorCodes.INVALID_STATE: 409,
    ErrorCodes.IDENTITY_MISMATCH: 403,
    ErrorCodes.ROOT_MISMATCH: 409,
    ErrorCodes.LEDGER_REJECTED: 502,
    ErrorCodes.PROVER_ERROR: 502,
    ErrorCodes.SNAPSHOT_FORMAT_ERROR: 502,
    ErrorCodes.TRANSPORT_ERROR: 503,
    ErrorCodes.STORE_CORRUPTED: 500,
}


def status_for_registry_error(exc: RegistryException) -> int:
    return REGISTRY_STATUS_CODES.get(exc.code, 500)


def _envelope(status_code: int, detail: ErrorDetail) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(ok=False, error=detail).model_dump(),
    )


async def registry_error_handler(request: Request, exc: RegistryException) -> JSONResponse:
    """Render exceptions raised by the engine or its adapters."""
    status_code = status_for_registry_error(exc)
    if status_code >= 500:
        logger.warning(f"{request.method} {request.url.path} failed: [{exc.code}] {exc.message}")
    return _envelope(
        status_code,
        ErrorDetail(
            code=exc.code,
            message=exc.message,
            details=exc.details,
            retryable=exc.retryable,
        ),
    )


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _envelope(
        500,
        ErrorDetail(
            code="INTERNAL_ERROR",
            message="An unexpected error occurred",
            details={"type": type(exc).__name__},
        ),
    )
