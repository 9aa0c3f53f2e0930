"""
api/limiter.py -- Shared slowapi rate limiter instance.

Imported by api/main.py (to mount as middleware) and web/routes.py (to limit
the OAuth callback with @limiter.limit()).

A single shared instance means all routes share the same in-memory counter
store. Separate instances per module would never trigger.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")


def callback_rate_limit() -> str:
    """Limit string for GET /callback, read per request from settings."""
    return get_settings().callback_rate_limit
