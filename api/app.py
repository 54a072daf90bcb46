"""
Module 09D - FastAPI Application

REST surface over the reconciliation engine. Handlers are plain
functions; FastAPI runs them in its worker threads and the engine
serializes registry writes itself.

Usage:
    uvicorn api.app:app --reload

    # Or run directly
    python -m api.app
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.deps import get_runtime_config
from api.errors import generic_error_handler, registry_error_handler
from api.routes import health, identity, registry
from core.schemas.errors import RegistryException


logging.basicConfig(
    level=getattr(logging, get_runtime_config().log_level, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title="Identity Registry API",
        description="""
HTTP API for the Merkle identity-commitment registry.

## Endpoints

- **POST /submit** - Register a subject's identity (pending)
- **POST /approve** - Approve a subject and publish the new root
- **POST /verify** - Prove membership and record it on the ledger
- **POST /revoke** - Revoke a subject and publish the new root
- **GET /registry-info** - Accumulator, record and ledger summary
- **POST /snapshot/save**, **POST /snapshot/load** - Snapshot maintenance

## Errors

Every failure returns `{"ok": false, "error": {"code", "message", "details", "retryable"}}`
with a stable error code. `TRANSPORT_ERROR` responses are retryable.
        """,
        version="0.1.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RegistryException, registry_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    app.include_router(health.router)
    app.include_router(identity.router)
    app.include_router(registry.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
