"""API route handlers."""

from api.routes import health, identity, registry

__all__ = ["health", "identity", "registry"]
