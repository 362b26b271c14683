"""
auth/accounts.py -- Registration and login flows.

Registration writes three rows -- the user, their default organisation, and
the membership linking them -- inside one store.atomic() block. Either all
three persist or none do, so there is never a user without a default
organisation.

Login goes through authenticate_user() for timing equalization and reports
every failure (unknown email, wrong password) with the same message.

Both flows issue tokens with the single configured TTL.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import asyncio
import logging
import uuid

from sqlalchemy.exc import IntegrityError

from auth.models import Organisation, User
from auth.store import CredentialStore
from auth.tokens import authenticate_user, create_access_token, hash_password
from core.errors import Conflict, FieldError, Unauthenticated

logger = logging.getLogger("orgaccess.auth")

_EMAIL_TAKEN = FieldError(field="email", message="Email already in use")


async def register_user(
    store: CredentialStore,
    first_name: str,
    last_name: str,
    email: str,
    password: str,
    phone: str | None = None,
) -> tuple[User, str]:
    """Create a user with a default organisation and return (user, access_token).

    Raises Conflict on field "email" if the address is already registered,
    including when a concurrent registration wins the race past the pre-check.
    """
    if await store.find_user_by_email(email) is not None:
        raise Conflict("Email already in use", errors=[_EMAIL_TAKEN])

    hashed = await asyncio.to_thread(hash_password, password)
    user = User(
        user_id=str(uuid.uuid4()),
        first_name=first_name,
        last_name=last_name,
        email=email,
        password=hashed,
        phone=phone,
    )
    org = Organisation(
        org_id=str(uuid.uuid4()),
        name=f"{first_name}'s Organisation",
        description=f"Default organisation for {first_name} {last_name}",
    )

    try:
        async with store.atomic() as tx:
            await tx.insert_user(user)
            await tx.insert_organisation(org)
            await tx.insert_membership(user.user_id, org.org_id)
    except IntegrityError:
        if await store.find_user_by_email(email) is not None:
            raise Conflict("Email already in use", errors=[_EMAIL_TAKEN]) from None
        raise

    logger.info("Registered user %s with default organisation %s", user.user_id, org.org_id)
    return user, create_access_token(user.user_id, user.email)


async def login(store: CredentialStore, email: str, password: str) -> tuple[User, str]:
    """Verify credentials and return (user, access_token).

    Raises Unauthenticated("Authentication failed") for any bad credential.
    """
    user = await authenticate_user(store, email, password)
    if user is None:
        logger.info("Failed login attempt")
        raise Unauthenticated("Authentication failed")
    return user, create_access_token(user.user_id, user.email)
