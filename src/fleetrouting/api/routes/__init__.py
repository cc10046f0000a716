"""API route registrations."""

from . import health, routing

__all__ = ["health", "routing"]
