"""Rate limiting for the gated endpoints (slowapi)."""

from slowapi import Limiter
from slowapi.util import get_remote_address

# Keyed by client address; the admin gate has no user identity to key on
limiter = Limiter(key_func=get_remote_address)

LOGIN_LIMIT = "10/minute"
RUN_LIMIT = "20/minute"
RECOMMENDATIONS_LIMIT = "5/minute"
