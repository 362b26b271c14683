"""
auth/models.py -- Domain dataclasses for identity and tenancy entities.

Pattern: Data class (pure data container, zero logic). Stores and the access
core do the work; these only own the shape.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered identity.

    email is unique and compared case-sensitively, exactly as stored.
    password is the bcrypt hash -- it is never rendered in any response.
    """

    user_id: str
    first_name: str
    last_name: str
    email: str
    password: str
    phone: str | None = None
    created_at: str | None = None


@dataclass
class Organisation:
    """A tenant. Data visibility is scoped by membership in one of these."""

    org_id: str
    name: str
    description: str
    created_at: str | None = None


@dataclass(frozen=True)
class Claim:
    """Verified identity carried by a bearer token. Never persisted.

    expires_at is a UNIX timestamp (seconds). A Claim only exists once the
    signature and expiry have been checked by decode_access_token().
    """

    user_id: str
    email: str
    expires_at: int
