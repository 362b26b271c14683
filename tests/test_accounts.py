"""Unit tests for auth/accounts.py -- registration and login flows.

Covers:
- registration writes user, default organisation, and membership together
- the issued token verifies back to the new user
- duplicate email -> Conflict on field "email"
- registration atomicity: a failing organisation insert leaves no user behind
- login success, and identical failures for unknown email and wrong password
"""

from __future__ import annotations

import pytest

from auth import accounts
from auth.store import CredentialStore, StoreTransaction
from auth.tokens import decode_access_token
from core.errors import Conflict, StoreUnavailable, Unauthenticated

PASSWORD = "C0mpl3xP@ssw0rd"


async def _register(store: CredentialStore, email: str = "johndoe@email.com"):
    return await accounts.register_user(
        store, first_name="John", last_name="Doe", email=email, password=PASSWORD, phone="1234567890"
    )


@pytest.mark.asyncio
async def test_register_creates_default_organisation(store: CredentialStore) -> None:
    user, _token = await _register(store)

    stored = await store.find_user_by_email("johndoe@email.com")
    assert stored is not None and stored.user_id == user.user_id
    assert stored.password != PASSWORD

    orgs = await store.get_organisations_for_user(user.user_id)
    assert len(orgs) == 1
    assert orgs[0].name == "John's Organisation"
    assert orgs[0].description == "Default organisation for John Doe"


@pytest.mark.asyncio
async def test_register_token_identifies_user(store: CredentialStore) -> None:
    user, token = await _register(store)
    claim = decode_access_token(token)
    assert claim is not None
    assert claim.user_id == user.user_id
    assert claim.email == "johndoe@email.com"


@pytest.mark.asyncio
async def test_duplicate_email_conflict(store: CredentialStore) -> None:
    await _register(store, email="a@x.com")
    with pytest.raises(Conflict) as exc_info:
        await _register(store, email="a@x.com")
    assert [e.field for e in exc_info.value.errors] == ["email"]


@pytest.mark.asyncio
async def test_registration_is_atomic(store: CredentialStore, monkeypatch) -> None:
    async def failing_insert(self, org):
        raise StoreUnavailable()

    monkeypatch.setattr(StoreTransaction, "insert_organisation", failing_insert)

    with pytest.raises(StoreUnavailable):
        await _register(store, email="orphan@x.com")

    assert await store.find_user_by_email("orphan@x.com") is None


@pytest.mark.asyncio
async def test_login_success(store: CredentialStore) -> None:
    registered, _ = await _register(store)
    user, token = await accounts.login(store, "johndoe@email.com", PASSWORD)
    assert user.user_id == registered.user_id
    assert decode_access_token(token).user_id == registered.user_id


@pytest.mark.asyncio
async def test_login_failures_are_indistinguishable(store: CredentialStore) -> None:
    await _register(store)
    with pytest.raises(Unauthenticated) as wrong_password:
        await accounts.login(store, "johndoe@email.com", "Wr0ngP@ssword")
    with pytest.raises(Unauthenticated) as unknown_email:
        await accounts.login(store, "nobody@email.com", PASSWORD)
    assert wrong_password.value.message == unknown_email.value.message == "Authentication failed"
