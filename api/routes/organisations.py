"""
api/routes/organisations.py -- Organisation and membership endpoints.

Routes:
  GET  /api/organisations                   -- organisations the caller belongs to
  POST /api/organisations                   -- create one; caller becomes a member
  GET  /api/organisations/{org_id}          -- one organisation (members only)
  GET  /api/organisations/{org_id}/users    -- its members (members only)
  POST /api/organisations/{org_id}/users    -- add a user (members only)

Auth policy: every route requires a bearer token. Decisions live in
auth/access.py; this module only maps bodies to arguments and records to
response models.

Status codes for a single organisation:
  404 -- no such organisation
  403 -- organisation exists but the caller is not a member
  400 -- (add member) organisation or user to add does not exist
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from api.models import (
    MemberAdd,
    MessageResponse,
    OrganisationCreate,
    OrganisationData,
    OrganisationListData,
    OrganisationListResponse,
    OrganisationOut,
    OrganisationResponse,
    UserListData,
    UserListResponse,
    UserOut,
)
from auth import access
from auth.dependencies import get_current_claim, get_store
from auth.models import Claim
from auth.store import CredentialStore

router = APIRouter()


@router.get("/organisations", response_model=OrganisationListResponse)
async def list_organisations(
    claim: Claim = Depends(get_current_claim),
    store: CredentialStore = Depends(get_store),
) -> OrganisationListResponse:
    orgs = await access.list_organisations(store, claim)
    return OrganisationListResponse(
        data=OrganisationListData(organisations=[OrganisationOut.from_organisation(o) for o in orgs])
    )


@router.post("/organisations", response_model=OrganisationResponse, status_code=201)
async def create_organisation(
    body: OrganisationCreate,
    claim: Claim = Depends(get_current_claim),
    store: CredentialStore = Depends(get_store),
) -> OrganisationResponse:
    """Create an organisation. The organisation and the caller's membership are written atomically."""
    org = await access.create_organisation(store, claim, body.name, body.description)
    return OrganisationResponse(
        message="Organisation created successfully",
        data=OrganisationData(organisation=OrganisationOut.from_organisation(org)),
    )


@router.get("/organisations/{org_id}", response_model=OrganisationResponse)
async def get_organisation(
    org_id: str,
    claim: Claim = Depends(get_current_claim),
    store: CredentialStore = Depends(get_store),
) -> OrganisationResponse:
    org = await access.get_organisation(store, claim, org_id)
    return OrganisationResponse(
        message="Organisation found",
        data=OrganisationData(organisation=OrganisationOut.from_organisation(org)),
    )


@router.get("/organisations/{org_id}/users", response_model=UserListResponse)
async def list_members(
    org_id: str,
    claim: Claim = Depends(get_current_claim),
    store: CredentialStore = Depends(get_store),
) -> UserListResponse:
    users = await access.list_members(store, claim, org_id)
    return UserListResponse(data=UserListData(users=[UserOut.from_user(u) for u in users]))


@router.post("/organisations/{org_id}/users", response_model=MessageResponse, status_code=201)
async def add_member(
    org_id: str,
    body: MemberAdd,
    claim: Claim = Depends(get_current_claim),
    store: CredentialStore = Depends(get_store),
) -> MessageResponse:
    """Add a user to an organisation. Adding an existing member succeeds without change."""
    await access.add_member(store, claim, org_id, body.user_id)
    return MessageResponse(message="User added to organisation successfully")
