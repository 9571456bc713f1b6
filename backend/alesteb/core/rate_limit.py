from slowapi import Limiter
from slowapi.util import get_remote_address
from alesteb.core.config import settings

# Per-client-address limits for the auth endpoints; in-memory storage
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)
