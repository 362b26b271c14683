"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Every /api/* route needs two things, both passed explicitly into the access
core:
  - the CredentialStore created in the application lifespan (get_store)
  - the verified Claim from the Authorization: Bearer <token> header
    (get_current_claim)

try_get_current_claim() is the soft variant (returns None on failure).
get_current_claim() wraps it and raises Unauthenticated (401). A missing
header, a header without the Bearer scheme, a bad signature, a malformed
token, and an expired token all produce the same response.

Layer rule: no imports from api/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.models import Claim
from auth.store import CredentialStore
from auth.tokens import decode_access_token
from core.errors import Unauthenticated


def get_store(request: Request) -> CredentialStore:
    """Return the application's CredentialStore.

    Use as a FastAPI dependency:
        @router.get("/thing")
        async def route(store: CredentialStore = Depends(get_store)): ...
    """
    return request.app.state.store


def try_get_current_claim(request: Request) -> Claim | None:
    """Verify the bearer token on the request. Returns None on any failure."""
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return decode_access_token(token.strip())


def get_current_claim(request: Request) -> Claim:
    """Require a valid bearer token. Raises Unauthenticated (401) otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(claim: Claim = Depends(get_current_claim)): ...
    """
    claim = try_get_current_claim(request)
    if claim is None:
        raise Unauthenticated("Invalid or expired token.")
    return claim
