"""
api/routes/auth.py -- Registration and login endpoints.

Routes:
  POST /auth/register  -- create user + default organisation; returns a token
  POST /auth/login     -- email/password login; returns a token

Both are public, rate-limited per client IP, and send
Cache-Control: no-store so tokens are never cached by intermediaries.

Security:
  login() goes through auth.accounts.login(), which uses authenticate_user()
  for timing equalization -- never inline the lookup and bcrypt check here.
  Wrong email and wrong password return the same 401.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from api.limiter import LOGIN_LIMIT, REGISTER_LIMIT, limiter
from api.models import AuthData, AuthResponse, LoginRequest, RegisterRequest, UserOut
from auth import accounts
from auth.dependencies import get_store
from auth.store import CredentialStore

router = APIRouter()


@limiter.limit(REGISTER_LIMIT)  # must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/register", response_model=AuthResponse, status_code=201)
async def register(
    request: Request,
    response: Response,
    body: RegisterRequest,
    store: CredentialStore = Depends(get_store),
) -> AuthResponse:
    """Register a user. Their default organisation is created in the same transaction."""
    user, token = await accounts.register_user(
        store,
        first_name=body.first_name,
        last_name=body.last_name,
        email=body.email,
        password=body.password,
        phone=body.phone,
    )
    response.headers["Cache-Control"] = "no-store"
    return AuthResponse(
        message="Registration successful",
        data=AuthData(access_token=token, user=UserOut.from_user(user)),
    )


@limiter.limit(LOGIN_LIMIT)  # brute-force mitigation
@router.post("/auth/login", response_model=AuthResponse)
async def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    store: CredentialStore = Depends(get_store),
) -> AuthResponse:
    """Authenticate with email and password."""
    user, token = await accounts.login(store, body.email, body.password)
    response.headers["Cache-Control"] = "no-store"
    return AuthResponse(
        message="Login successful",
        data=AuthData(access_token=token, user=UserOut.from_user(user)),
    )
