"""
rate_limit.py — Shared slowapi limiter for the feed API.

Keyed by client IP. Only the commands that cost upstream calls opt in
(POST /api/v1/feed/refresh and /more); status reads, the map and the
stream are unlimited.

A limited route takes `request: Request` and stacks the decorator under
the router one:

    @router.post("/refresh")
    @limiter.limit("30/minute")
    async def refresh_feed(request: Request, ...):

main.py puts the instance on app.state and registers slowapi's 429
handler for RateLimitExceeded.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)
