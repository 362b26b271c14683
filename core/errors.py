"""
core/errors.py -- Domain error taxonomy shared by auth/ and api/.

Every failure the access-control layer can produce is one of these classes.
Each carries a machine-readable code, an HTTP status, and a human-readable
message. The api/ layer renders all of them through one exception handler,
so route code raises and never builds error responses by hand.

  ValidationFailed  422  field-level, client-correctable
  BadRequest        400  a referenced entity is missing
  Unauthenticated   401  missing, invalid, or expired token; failed login
  Forbidden         403  authenticated, existence acknowledged, access denied
  NotFound          404  absent, or existence deliberately concealed
  Conflict          409  unique value already taken (e.g. email)
  Internal          500  infrastructure failure; detail never leaves the server

Layer rule: core/ is the kernel. No imports from api/ or auth/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FieldError:
    """One client-correctable problem with a single input field."""

    field: str
    message: str


class AccessError(Exception):
    """Base class for all domain failures surfaced to API clients."""

    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None, errors: list[FieldError] | None = None) -> None:
        self.message = message or self.default_message
        self.errors: list[FieldError] = list(errors or [])
        super().__init__(self.message)


class ValidationFailed(AccessError):
    status_code = 422
    code = "validation_error"
    default_message = "Request validation failed."


class BadRequest(AccessError):
    status_code = 400
    code = "bad_request"
    default_message = "Client error."


class Unauthenticated(AccessError):
    status_code = 401
    code = "unauthenticated"
    default_message = "Authentication required."


class Forbidden(AccessError):
    status_code = 403
    code = "forbidden"
    default_message = "Access denied."


class NotFound(AccessError):
    status_code = 404
    code = "not_found"
    default_message = "Resource not found."


class Conflict(AccessError):
    status_code = 409
    code = "conflict"
    default_message = "Resource already exists."


class Internal(AccessError):
    pass


class StoreUnavailable(Internal):
    """The credential store failed or did not answer within its timeout."""
