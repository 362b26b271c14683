"""Unit tests for auth/store.py -- CredentialStore persistence.

Covers:
- user insert/lookup by id and by email (email is case-sensitive)
- duplicate email raises IntegrityError (callers map it to Conflict)
- membership links: listing both directions, is_linked
- duplicate membership insert is ignored and reported as False
- atomic(): a failing insert rolls back every write in the unit
- _bounded: timeouts and driver errors become StoreUnavailable;
  IntegrityError passes through
- an unreachable database surfaces as StoreUnavailable
"""

from __future__ import annotations

import asyncio
import uuid

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from auth.models import Organisation, User
from auth.store import CredentialStore, _bounded
from core.errors import StoreUnavailable


def _user(email: str, first_name: str = "John") -> User:
    return User(
        user_id=str(uuid.uuid4()),
        first_name=first_name,
        last_name="Doe",
        email=email,
        password="$2b$04$notarealhashnotarealhashnotarealhashnotarealhash",
        phone="1234567890",
    )


def _org(name: str = "Acme") -> Organisation:
    return Organisation(org_id=str(uuid.uuid4()), name=name, description=f"{name} description")


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_insert_and_find_user(store: CredentialStore) -> None:
    user = _user("johndoe@email.com")
    await store.insert_user(user)

    by_id = await store.find_user_by_id(user.user_id)
    by_email = await store.find_user_by_email("johndoe@email.com")

    assert by_id is not None and by_email is not None
    assert by_id.user_id == by_email.user_id == user.user_id
    assert by_id.first_name == "John"
    assert by_id.phone == "1234567890"
    assert by_id.created_at


@pytest.mark.asyncio
async def test_find_missing_user_returns_none(store: CredentialStore) -> None:
    assert await store.find_user_by_id(str(uuid.uuid4())) is None
    assert await store.find_user_by_email("nobody@email.com") is None


@pytest.mark.asyncio
async def test_email_lookup_is_case_sensitive(store: CredentialStore) -> None:
    await store.insert_user(_user("johndoe@email.com"))
    assert await store.find_user_by_email("JohnDoe@email.com") is None


@pytest.mark.asyncio
async def test_duplicate_email_raises_integrity_error(store: CredentialStore) -> None:
    await store.insert_user(_user("a@x.com"))
    with pytest.raises(IntegrityError):
        await store.insert_user(_user("a@x.com", first_name="Jane"))


# ---------------------------------------------------------------------------
# Memberships
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_membership_listing_both_directions(store: CredentialStore) -> None:
    john, jane = _user("john@x.com"), _user("jane@x.com", "Jane")
    acme, globex = _org("Acme"), _org("Globex")
    for u in (john, jane):
        await store.insert_user(u)
    for o in (acme, globex):
        await store.insert_organisation(o)

    assert await store.insert_membership(john.user_id, acme.org_id) is True
    assert await store.insert_membership(john.user_id, globex.org_id) is True
    assert await store.insert_membership(jane.user_id, globex.org_id) is True

    assert set(await store.list_organisations_for_user(john.user_id)) == {acme.org_id, globex.org_id}
    assert set(await store.list_users_for_organisation(globex.org_id)) == {john.user_id, jane.user_id}
    assert await store.is_linked(jane.user_id, globex.org_id)
    assert not await store.is_linked(jane.user_id, acme.org_id)

    orgs = await store.get_organisations_for_user(john.user_id)
    assert [o.name for o in orgs] == ["Acme", "Globex"]
    members = await store.get_users_for_organisation(globex.org_id)
    assert {m.email for m in members} == {"john@x.com", "jane@x.com"}


@pytest.mark.asyncio
async def test_duplicate_membership_is_ignored(store: CredentialStore) -> None:
    user, org = _user("dup@x.com"), _org()
    await store.insert_user(user)
    await store.insert_organisation(org)

    assert await store.insert_membership(user.user_id, org.org_id) is True
    assert await store.insert_membership(user.user_id, org.org_id) is False
    assert await store.list_users_for_organisation(org.org_id) == [user.user_id]


@pytest.mark.asyncio
async def test_membership_requires_existing_rows(store: CredentialStore) -> None:
    org = _org()
    await store.insert_organisation(org)
    with pytest.raises(IntegrityError):
        await store.insert_membership(str(uuid.uuid4()), org.org_id)


# ---------------------------------------------------------------------------
# Atomic writes
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_atomic_commits_all_writes(store: CredentialStore) -> None:
    user, org = _user("atomic@x.com"), _org()
    async with store.atomic() as tx:
        await tx.insert_user(user)
        await tx.insert_organisation(org)
        assert await tx.insert_membership(user.user_id, org.org_id) is True

    assert await store.find_user_by_id(user.user_id) is not None
    assert await store.find_organisation_by_id(org.org_id) is not None
    assert await store.is_linked(user.user_id, org.org_id)


@pytest.mark.asyncio
async def test_atomic_rolls_back_when_organisation_insert_fails(store: CredentialStore) -> None:
    """An organisation id collision must leave no orphan user behind."""
    existing = _org("Existing")
    await store.insert_organisation(existing)

    user = _user("orphan@x.com")
    clashing = Organisation(org_id=existing.org_id, name="Clash", description="same primary key")

    with pytest.raises(IntegrityError):
        async with store.atomic() as tx:
            await tx.insert_user(user)
            await tx.insert_organisation(clashing)
            await tx.insert_membership(user.user_id, clashing.org_id)

    assert await store.find_user_by_email("orphan@x.com") is None
    assert await store.list_organisations_for_user(user.user_id) == []
    assert (await store.find_organisation_by_id(existing.org_id)).name == "Existing"


@pytest.mark.asyncio
async def test_atomic_rolls_back_on_any_exception(store: CredentialStore) -> None:
    user = _user("boom@x.com")
    with pytest.raises(RuntimeError):
        async with store.atomic() as tx:
            await tx.insert_user(user)
            raise RuntimeError("boom")
    assert await store.find_user_by_id(user.user_id) is None


# ---------------------------------------------------------------------------
# Failure normalisation
# ---------------------------------------------------------------------------


class _FakeStore:
    timeout = 0.05

    @_bounded
    async def slow(self) -> None:
        await asyncio.sleep(5)

    @_bounded
    async def broken(self) -> None:
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    @_bounded
    async def duplicate(self) -> None:
        raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))


@pytest.mark.asyncio
async def test_timeout_becomes_store_unavailable() -> None:
    with pytest.raises(StoreUnavailable):
        await _FakeStore().slow()


@pytest.mark.asyncio
async def test_driver_error_becomes_store_unavailable() -> None:
    with pytest.raises(StoreUnavailable) as exc_info:
        await _FakeStore().broken()
    assert "connection refused" not in exc_info.value.message


@pytest.mark.asyncio
async def test_integrity_error_passes_through() -> None:
    with pytest.raises(IntegrityError):
        await _FakeStore().duplicate()


@pytest.mark.asyncio
async def test_unreachable_database(tmp_path) -> None:
    missing_dir = tmp_path / "does-not-exist"
    unreachable = CredentialStore(f"sqlite+aiosqlite:///{missing_dir / 'x.db'}")
    try:
        with pytest.raises(StoreUnavailable):
            await unreachable.find_user_by_email("a@x.com")
        with pytest.raises(StoreUnavailable):
            await unreachable.ping()
    finally:
        await unreachable.close()
