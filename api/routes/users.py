"""
api/routes/users.py -- User profile endpoint.

Routes:
  GET /api/users/{user_id} -- a user's profile, if the caller may see it

Auth policy: bearer token required. Visibility is decided by
auth.access.get_user(): callers always see themselves, and see other users
only when they share an organisation. Everyone else gets 404, identical to
a user id that does not exist.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from api.models import UserData, UserOut, UserResponse
from auth import access
from auth.dependencies import get_current_claim, get_store
from auth.models import Claim
from auth.store import CredentialStore

router = APIRouter()


@router.get("/users/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    claim: Claim = Depends(get_current_claim),
    store: CredentialStore = Depends(get_store),
) -> UserResponse:
    user = await access.get_user(store, claim, user_id)
    return UserResponse(data=UserData(user=UserOut.from_user(user)))
