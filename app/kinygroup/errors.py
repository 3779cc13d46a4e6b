"""
Service-layer exceptions.

Services raise these; JSON blueprints turn them into ``{"error": ...}`` bodies
with ``status_code``, HTML views flash the message.
"""
from __future__ import annotations


class ServiceError(Exception):
    status_code = 400

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(ServiceError, ValueError):
    status_code = 400


class ConflictError(ServiceError):
    """Unique slug / email already taken."""

    status_code = 409


class NotFoundError(ServiceError, LookupError):
    status_code = 404


class AuthenticationRequired(ServiceError):
    status_code = 401


class PermissionDeniedError(ServiceError, PermissionError):
    status_code = 403
