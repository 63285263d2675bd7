"""
Service-layer exceptions.

Services raise these; the app factory maps them to JSON responses
(400 / 404 / 409). Anything else is a 500.
"""
from __future__ import annotations


class ValidationError(ValueError):
    """Malformed or missing input. Carries field-level detail."""

    def __init__(self, message: str, errors: list[dict[str, str]] | None = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class NotFoundError(LookupError):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConflictError(Exception):
    """A uniqueness or one-to-one invariant would be violated."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def field_error(field: str, message: str) -> dict[str, str]:
    return {"field": field, "message": message}
