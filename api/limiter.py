"""
api/limiter.py -- Shared slowapi rate limiter for the unauthenticated auth routes.

POST /auth/login and POST /auth/register are the only routes reachable
without a token, so they are the only ones throttled. Limits come from
Settings (LOGIN_RATE_LIMIT, REGISTER_RATE_LIMIT) and are keyed by client IP.
RATE_LIMIT_ENABLED=false turns the limiter off entirely (test suites that
register many users from one client).

A single shared instance keeps one in-memory counter store for the process.
Separate instances per module would each count on their own and never trip.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

_settings = get_settings()

LOGIN_LIMIT = _settings.login_rate_limit
REGISTER_LIMIT = _settings.register_rate_limit

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
    enabled=_settings.rate_limit_enabled,
)
