from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import settings

# Shared by main (exception handler, exemptions) and the auth routes
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.rate_limit],
    enabled=settings.rate_limit_enabled,
)
