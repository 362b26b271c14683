"""
auth/membership.py -- Membership-based visibility rules.

A MembershipResolver answers the two questions every tenancy decision reduces
to: do two users share an organisation, and is a user a member of a given
organisation. It only reads from the credential store.

One resolver is built per authorization decision. It caches each user's
organisation-id set for its own lifetime so a decision that asks about the
same user twice hits the store once. Nothing is shared across requests.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import asyncio

from auth.store import CredentialStore


class MembershipResolver:
    def __init__(self, store: CredentialStore) -> None:
        self._store = store
        self._org_ids: dict[str, frozenset[str]] = {}

    async def organisation_ids(self, user_id: str) -> frozenset[str]:
        """Return the ids of every organisation user_id belongs to."""
        cached = self._org_ids.get(user_id)
        if cached is None:
            cached = frozenset(await self._store.list_organisations_for_user(user_id))
            self._org_ids[user_id] = cached
        return cached

    async def shares_organisation(self, user_a: str, user_b: str) -> bool:
        """True iff the two users' organisation sets intersect.

        Symmetric in its arguments. A user with at least one membership
        shares an organisation with themself.
        """
        orgs_a, orgs_b = await asyncio.gather(self.organisation_ids(user_a), self.organisation_ids(user_b))
        return not orgs_a.isdisjoint(orgs_b)

    async def is_member(self, user_id: str, org_id: str) -> bool:
        """True iff the exact (user_id, org_id) link exists."""
        cached = self._org_ids.get(user_id)
        if cached is not None:
            return org_id in cached
        return await self._store.is_linked(user_id, org_id)
