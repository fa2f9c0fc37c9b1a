"""
Rate limiting for unauthenticated write endpoints.

Routes decorated with the shared limiter must accept a `request: Request`
argument; slowapi reads the client address from it.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from silent_money.config import get_settings

_settings = get_settings()

limiter = Limiter(
    key_func=get_remote_address,
    enabled=_settings.rate_limit_enabled,
)

AUTH_LIMIT = _settings.rate_limit_auth
CONTACT_LIMIT = _settings.rate_limit_contact
