"""
auth/access.py -- Access-control decisions for every protected operation.

Each operation is a short pipeline of ordered, early-exit checks. The
verified Claim and the store handle are explicit arguments: nothing here
reads request-scoped or global state. Token verification (the first step of
every pipeline) has already happened in auth/dependencies.py by the time
these functions run.

Visibility rules:

  get_user          Self-access always succeeds. Otherwise the actor must
                    share an organisation with the target, else NotFound.
                    User-to-user linkage is sensitive, so an out-of-scope
                    user is reported as absent, never as forbidden.

  get_organisation  Absent -> NotFound. Present but actor not a member ->
  list_members      Forbidden. Organisation existence is not sensitive, so
                    it is acknowledged.

  create_organisation  Organisation row and creator membership are written
                       in one atomic unit -- an organisation never exists
                       with zero members.

  add_member        Referenced organisation must exist (BadRequest). Only an
                    existing member may add someone (Forbidden), checked
                    before the target user lookup (BadRequest if absent).
                    Adding an existing member is a no-op.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
import uuid

from auth.membership import MembershipResolver
from auth.models import Claim, Organisation, User
from auth.store import CredentialStore
from core.errors import BadRequest, Forbidden, NotFound

logger = logging.getLogger("orgaccess.access")


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


async def get_user(store: CredentialStore, claim: Claim, user_id: str) -> User:
    """Return user_id's record if the actor may see it."""
    if user_id == claim.user_id:
        user = await store.find_user_by_id(user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    resolver = MembershipResolver(store)
    if not await resolver.shares_organisation(claim.user_id, user_id):
        logger.info("User %s denied view of user %s: no shared organisation", claim.user_id, user_id)
        raise NotFound("User not found")

    user = await store.find_user_by_id(user_id)
    if user is None:
        raise NotFound("User not found")
    return user


# ---------------------------------------------------------------------------
# Organisations
# ---------------------------------------------------------------------------


async def list_organisations(store: CredentialStore, claim: Claim) -> list[Organisation]:
    """Return every organisation the actor belongs to."""
    return await store.get_organisations_for_user(claim.user_id)


async def get_organisation(store: CredentialStore, claim: Claim, org_id: str) -> Organisation:
    """Return org_id's record if the actor is a member of it."""
    org = await store.find_organisation_by_id(org_id)
    if org is None:
        raise NotFound("Organisation not found")

    if not await MembershipResolver(store).is_member(claim.user_id, org_id):
        logger.info("User %s denied access to organisation %s", claim.user_id, org_id)
        raise Forbidden("User not part of organisation")
    return org


async def create_organisation(store: CredentialStore, claim: Claim, name: str, description: str) -> Organisation:
    """Create an organisation with the actor as its first member."""
    if await store.find_user_by_id(claim.user_id) is None:
        raise BadRequest("Client error")

    org = Organisation(org_id=str(uuid.uuid4()), name=name, description=description)
    async with store.atomic() as tx:
        await tx.insert_organisation(org)
        await tx.insert_membership(claim.user_id, org.org_id)

    logger.info("User %s created organisation %s", claim.user_id, org.org_id)
    return org


# ---------------------------------------------------------------------------
# Memberships
# ---------------------------------------------------------------------------


async def add_member(store: CredentialStore, claim: Claim, org_id: str, user_id: str) -> bool:
    """Add user_id to org_id on the actor's behalf.

    Returns True if a new membership was created, False if user_id was
    already a member.
    """
    if await store.find_organisation_by_id(org_id) is None:
        raise BadRequest("Client error")
    # Non-members never learn whether user_id exists.
    if not await MembershipResolver(store).is_member(claim.user_id, org_id):
        logger.info("User %s denied adding members to organisation %s", claim.user_id, org_id)
        raise Forbidden("User not part of organisation")
    if await store.find_user_by_id(user_id) is None:
        raise BadRequest("Client error")

    created = await store.insert_membership(user_id, org_id)
    if created:
        logger.info("User %s added user %s to organisation %s", claim.user_id, user_id, org_id)
    return created


async def list_members(store: CredentialStore, claim: Claim, org_id: str) -> list[User]:
    """Return the members of org_id if the actor is one of them."""
    await get_organisation(store, claim, org_id)
    return await store.get_users_for_organisation(org_id)
