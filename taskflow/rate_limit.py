"""Per-client request rate limiting."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from taskflow.config import get_settings

settings = get_settings()

GLOBAL_LIMIT_MESSAGE = "Too many requests. Please try again later."
AUTH_LIMIT_MESSAGE = "Too many login/auth attempts. Please try again in an hour."

limiter = Limiter(key_func=get_remote_address)

# One counter per client across every user and todo route
global_limit = limiter.shared_limit(settings.GLOBAL_RATE_LIMIT, scope="global", error_message=GLOBAL_LIMIT_MESSAGE)

# Stacked under global_limit on signup, login, forgot-password and reset-password
auth_limit = limiter.limit(settings.AUTH_RATE_LIMIT, error_message=AUTH_LIMIT_MESSAGE)
