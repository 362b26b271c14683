"""
auth/tokens.py -- JWT issue/verify and password hashing utilities.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       sub (user id), user_id, email, and exp. decode_access_token() returns
       None on any failure -- bad signature, malformed token, missing claims,
       or expiry all look identical to the caller. The dependency layer turns
       that None into a single 401. The specific reason is logged at DEBUG
       only.

  Expiry: one TTL for every token (Settings.token_expire_seconds), whether
       issued by registration or login. The expiry check is done here rather
       than by jose so the boundary is exact: a token is invalid at
       now >= exp, and callers can pass an explicit `now` for testing.

  Passwords: bcrypt directly (no passlib wrapper). Bcrypt is the right choice
       for low-entropy secrets because its cost factor makes brute-force
       expensive. The _DUMMY_HASH constant enables timing equalization in
       authenticate_user() so response time does not reveal whether an email
       is registered.

  SECRET_KEY: sourced from core.config.get_settings() once at import time
       and never mutated.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

from auth.models import Claim
from core.config import get_settings

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import CredentialStore

logger = logging.getLogger("orgaccess.auth")

# ---------------------------------------------------------------------------
# Config -- read once at module load via the lru_cache singleton
# ---------------------------------------------------------------------------

_settings = get_settings()

_ALGORITHM = "HS256"

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt raises ValueError for input longer than 72 bytes. Request models
    reject such passwords before they reach this function.
    """
    salt = bcrypt.gensalt(rounds=_settings.bcrypt_rounds)
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash -- treat as a mismatch.
        return False


# Timing equalization dummy hash.
# Computed once at module load so the first login attempt is not measurably
# slower than subsequent ones.
_DUMMY_HASH: str = hash_password("orgaccess_timing_dummy")


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def create_access_token(user_id: str, email: str, expire_seconds: int = 0, now: int | None = None) -> str:
    """Encode a signed JWT for user_id expiring expire_seconds from now.

    Args:
        user_id:        Stable user identifier, stored as sub and user_id.
        email:          Email at issue time.
        expire_seconds: Lifetime in seconds. If 0 (default), uses
                        Settings.token_expire_seconds. Negative values
                        raise ValueError.
        now:            Issue time as a UNIX timestamp. Defaults to the
                        current time.
    """
    if expire_seconds < 0:
        raise ValueError(f"expire_seconds must not be negative, got {expire_seconds}")
    issued_at = int(time.time()) if now is None else now
    duration = expire_seconds or _settings.token_expire_seconds
    payload = {
        "sub": user_id,
        "user_id": user_id,
        "email": email,
        "iat": issued_at,
        "exp": issued_at + duration,
    }
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM)


def decode_access_token(token: str, now: int | None = None) -> Claim | None:
    """Verify a JWT and return its Claim, or None on any failure.

    Returning None (rather than raising) keeps the caller simple: any invalid
    token is treated as unauthenticated.
    """
    try:
        payload = jwt.decode(
            token,
            _settings.secret_key,
            algorithms=[_ALGORITHM],
            options={"verify_exp": False},
        )
    except JWTError as exc:
        logger.debug("Token rejected: %s", exc)
        return None

    user_id = payload.get("user_id")
    email = payload.get("email")
    exp = payload.get("exp")
    if not isinstance(user_id, str) or not isinstance(email, str) or not isinstance(exp, int):
        logger.debug("Token rejected: missing or malformed claims")
        return None

    current = int(time.time()) if now is None else now
    if current >= exp:
        logger.debug("Token rejected: expired at %d", exp)
        return None

    return Claim(user_id=user_id, email=email, expires_at=exp)


# ---------------------------------------------------------------------------
# User authentication (constant-time)
# ---------------------------------------------------------------------------


async def authenticate_user(store: CredentialStore, email: str, password: str) -> User | None:
    """Authenticate an email/password login with timing equalization.

    Always runs bcrypt whether or not the user exists:
    - Unknown email: bcrypt runs against _DUMMY_HASH (same cost as real check)
    - Wrong password: bcrypt runs against the real hash (same cost)

    bcrypt runs in a worker thread so it never blocks the event loop.
    Returns the User on success, None on any failure.
    """
    user = await store.find_user_by_email(email)
    if user is None:
        # Equalize timing -- do NOT return early before running bcrypt
        await asyncio.to_thread(verify_password, password, _DUMMY_HASH)
        return None
    if not await asyncio.to_thread(verify_password, password, user.password):
        return None
    return user
