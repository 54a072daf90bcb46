"""
HTTP Client Module

Provider-agnostic HTTP client with bounded retry.
"""

from .client import HttpClient, HttpError, HttpResponse

__all__ = [
    "HttpClient",
    "HttpError",
    "HttpResponse",
]
