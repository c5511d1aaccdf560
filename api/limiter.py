"""
api/limiter.py -- Shared slowapi rate limiter instance.

Imported by api/main.py (to mount as middleware and toggle via
RATE_LIMIT_ENABLED) and api/routes/v1/auth.py (to throttle login and
register with @limiter.limit()).

One shared instance means one in-memory counter store. Separate instances per
module would each count in isolation and the limits would never trigger.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")
