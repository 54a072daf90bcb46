"""
Module 09D - Minimal API (FastAPI)

HTTP API for the identity registry:
- POST /submit, /approve, /verify, /revoke - Subject lifecycle
- GET /pending, /is-approved/{id}, ... - Status lookups
- GET /registry-info, /current-root - Accumulator state
- POST /build-tree, /snapshot/load, /snapshot/save - Maintenance
- GET /health - Health check

Usage:
    uvicorn api.app:app --reload
"""

__version__ = "0.1.0"
